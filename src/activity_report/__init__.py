"""GitHub activity report: commit and pull-request progress against monthly goals."""
