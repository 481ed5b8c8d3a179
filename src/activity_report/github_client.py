"""GitHub GraphQL API client for activity data retrieval."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from .config import Config
from .errors import FetchError, PermissionDeniedError
from .models import CommitRecord, PullRequestRecord, RepositoryKind, RepositorySource

logger = logging.getLogger(__name__)

_PERMISSION_DENIED_MARKER = "Resource not accessible by integration"

USER_ID_QUERY = """
query($login: String!) {
  user(login: $login) {
    id
  }
}
"""

OWNED_REPOSITORIES_QUERY = """
query($owner: String!, $first: Int!) {
  repositoryOwner(login: $owner) {
    repositories(first: $first, ownerAffiliations: OWNER, isFork: false) {
      nodes {
        name
        owner { login }
      }
    }
  }
}
"""

ORGANIZATIONS_QUERY = """
query($login: String!, $first: Int!) {
  user(login: $login) {
    organizations(first: $first) {
      nodes { login }
    }
  }
}
"""

ORGANIZATION_REPOSITORIES_QUERY = """
query($org: String!, $first: Int!) {
  organization(login: $org) {
    repositories(first: $first, isFork: false) {
      nodes {
        name
        owner { login }
      }
    }
  }
}
"""

CONTRIBUTED_REPOSITORIES_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!, $first: Int!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      commitContributionsByRepository(maxRepositories: $first) {
        repository {
          name
          isFork
          owner { login }
        }
      }
    }
  }
}
"""

COMMIT_HISTORY_QUERY = """
query($owner: String!, $repo: String!, $since: GitTimestamp!, $author: CommitAuthor, $first: Int!) {
  repository(owner: $owner, name: $repo) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(first: $first, since: $since, author: $author) {
            nodes {
              oid
              additions
              deletions
              committedDate
              author {
                email
                user { login id }
              }
            }
          }
        }
      }
    }
  }
}
"""

PULL_REQUESTS_QUERY = """
query($owner: String!, $repo: String!, $first: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequests(first: $first, states: [OPEN, CLOSED, MERGED], orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes {
        createdAt
        mergedAt
        state
        author { login }
      }
    }
  }
}
"""


class GitHubClient:
    """Small, typed client for the GitHub GraphQL queries the report needs.

    Every query is sent once with a bounded timeout. Collections are read from a
    single page of ``PAGE_SIZE`` items; anything beyond that is not fetched.
    """

    PAGE_SIZE = 100

    def __init__(self, config: Config, timeout_seconds: Optional[int] = None) -> None:
        """Initialize an authenticated GitHub GraphQL client.

        Args:
            config: Validated runtime configuration including the token and API URL.
            timeout_seconds: Per-request timeout in seconds; defaults to the configured value.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds or config.timeout_seconds
        self._url = config.graphql_url

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def _format_datetime(self, value: datetime) -> str:
        """Format a datetime as UTC ISO8601 suitable for GitHub timestamp arguments."""
        utc_value = value.astimezone(timezone.utc)
        return utc_value.replace(microsecond=0).isoformat().replace("+00:00", "Z")

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
        if not value:
            return None

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _post_graphql(self, query: str, variables: Dict[str, Any], context: str) -> Dict[str, Any]:
        """Execute one GraphQL query and return its ``data`` object.

        Args:
            query: GraphQL document.
            variables: Query variables.
            context: Human-readable target used in error messages, e.g. ``owner/repo``.

        Raises:
            PermissionDeniedError: If the token may not read the target.
            FetchError: On transport failures, timeouts, HTTP >= 400, invalid JSON,
                or GraphQL errors.
        """
        try:
            response = self._session.post(
                self._url,
                json={"query": query, "variables": variables},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise FetchError(f"GitHub request failed for {context}: {exc}") from exc

        status_code = response.status_code
        if status_code == 403:
            raise PermissionDeniedError(f"Permission denied (HTTP 403) accessing {context}")
        if status_code >= 400:
            raise FetchError(
                f"GitHub API request failed for {context}: returned {status_code} - {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"GitHub API returned invalid JSON for {context}") from exc

        if not isinstance(payload, dict):
            raise FetchError(f"GitHub API returned unexpected payload shape for {context}")

        logger.debug("GraphQL response for %s: %s", context, payload)

        errors = payload.get("errors") or []
        if errors:
            messages = "; ".join(str(error.get("message", error)) for error in errors if isinstance(error, dict))
            is_forbidden = any(
                isinstance(error, dict)
                and (error.get("type") == "FORBIDDEN" or _PERMISSION_DENIED_MARKER in str(error.get("message", "")))
                for error in errors
            )
            if is_forbidden:
                raise PermissionDeniedError(f"Permission denied accessing {context}: {messages}")
            raise FetchError(f"GitHub GraphQL errors for {context}: {messages or errors}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise FetchError(f"GitHub API returned no data for {context}")

        return data

    def _repository_sources(self, nodes: List[Dict[str, Any]], kind: RepositoryKind) -> List[RepositorySource]:
        sources: List[RepositorySource] = []
        for node in nodes:
            if not node:
                continue
            name = node.get("name")
            owner = (node.get("owner") or {}).get("login")
            if name and owner:
                sources.append(RepositorySource(owner=str(owner), name=str(name), kind=kind))
        return sources

    def get_user_id(self, login: str) -> Optional[str]:
        """Return the GraphQL node id of a user, or ``None`` if the user does not exist."""
        data = self._post_graphql(USER_ID_QUERY, {"login": login}, context=f"user {login}")
        user = data.get("user") or {}
        user_id = user.get("id")
        return str(user_id) if user_id else None

    def list_owned_repositories(self, owner: str) -> List[RepositorySource]:
        """List non-fork repositories owned by a user or organization."""
        data = self._post_graphql(
            OWNED_REPOSITORIES_QUERY,
            {"owner": owner, "first": self.PAGE_SIZE},
            context=f"repositories of {owner}",
        )
        repository_owner = data.get("repositoryOwner")
        if repository_owner is None:
            raise FetchError(f"Repository owner '{owner}' was not found.")

        nodes = (repository_owner.get("repositories") or {}).get("nodes") or []
        return self._repository_sources(nodes, RepositoryKind.OWNED)

    def list_organizations(self, login: str) -> List[str]:
        """List logins of organizations the user is a member of."""
        data = self._post_graphql(
            ORGANIZATIONS_QUERY,
            {"login": login, "first": self.PAGE_SIZE},
            context=f"organizations of {login}",
        )
        user = data.get("user")
        if user is None:
            raise FetchError(f"User '{login}' was not found.")

        nodes = (user.get("organizations") or {}).get("nodes") or []
        return [str(node["login"]) for node in nodes if node and node.get("login")]

    def list_organization_repositories(self, org: str) -> List[RepositorySource]:
        """List non-fork repositories owned by an organization."""
        data = self._post_graphql(
            ORGANIZATION_REPOSITORIES_QUERY,
            {"org": org, "first": self.PAGE_SIZE},
            context=f"organization {org}",
        )
        organization = data.get("organization")
        if organization is None:
            raise FetchError(f"Organization '{org}' was not found.")

        nodes = (organization.get("repositories") or {}).get("nodes") or []
        return self._repository_sources(nodes, RepositoryKind.ORGANIZATION)

    def list_contributed_repositories(
        self,
        login: str,
        since: datetime,
        until: datetime,
    ) -> List[RepositorySource]:
        """List non-fork repositories the user committed to within ``[since, until]``."""
        data = self._post_graphql(
            CONTRIBUTED_REPOSITORIES_QUERY,
            {
                "login": login,
                "from": self._format_datetime(since),
                "to": self._format_datetime(until),
                "first": self.PAGE_SIZE,
            },
            context=f"contributions of {login}",
        )
        user = data.get("user")
        if user is None:
            raise FetchError(f"User '{login}' was not found.")

        collection = user.get("contributionsCollection") or {}
        nodes = [
            entry.get("repository")
            for entry in collection.get("commitContributionsByRepository") or []
            if entry and entry.get("repository") and not entry["repository"].get("isFork")
        ]
        return self._repository_sources(nodes, RepositoryKind.CONTRIBUTED)

    def fetch_commit_history(
        self,
        source: RepositorySource,
        since: datetime,
        author_id: Optional[str] = None,
    ) -> List[CommitRecord]:
        """Fetch up to ``PAGE_SIZE`` default-branch commits made since ``since``.

        Args:
            source: Repository to read.
            since: Earliest commit timestamp, applied server-side.
            author_id: Optional user node id; when given only that user's commits are returned.

        Returns:
            Commit records, newest first. Repositories without a default branch
            (for example empty repositories) yield an empty list.

        Raises:
            FetchError: If the repository is inaccessible or the payload is malformed.
        """
        variables: Dict[str, Any] = {
            "owner": source.owner,
            "repo": source.name,
            "since": self._format_datetime(since),
            "author": {"id": author_id} if author_id else None,
            "first": self.PAGE_SIZE,
        }
        data = self._post_graphql(COMMIT_HISTORY_QUERY, variables, context=source.name_with_owner)

        repository = data.get("repository")
        if repository is None:
            raise FetchError(f"Repository '{source.name_with_owner}' returned an empty response.")

        branch = repository.get("defaultBranchRef")
        if not branch:
            logger.debug("Repository has no default branch", extra={"repository": source.name_with_owner})
            return []

        history = (branch.get("target") or {}).get("history") or {}
        commits: List[CommitRecord] = []

        for node in history.get("nodes") or []:
            committed_date = self._parse_datetime(node.get("committedDate"))
            additions = node.get("additions")
            deletions = node.get("deletions")

            if committed_date is None or additions is None or deletions is None:
                raise FetchError(
                    "GitHub commit payload is missing required fields: "
                    f"repository={source.name_with_owner}, payload={node}"
                )

            author = node.get("author") or {}
            user = author.get("user") or {}
            commits.append(
                CommitRecord(
                    additions=additions,
                    deletions=deletions,
                    committedDate=committed_date,
                    repository=source.name_with_owner,
                    authorLogin=user.get("login"),
                    authorId=user.get("id"),
                    authorEmail=author.get("email"),
                    oid=node.get("oid"),
                )
            )

        return commits

    def fetch_pull_requests(self, owner: str, repo: str) -> List[PullRequestRecord]:
        """Fetch the ``PAGE_SIZE`` most recently created pull requests of a repository."""
        name_with_owner = f"{owner}/{repo}"
        data = self._post_graphql(
            PULL_REQUESTS_QUERY,
            {"owner": owner, "repo": repo, "first": self.PAGE_SIZE},
            context=name_with_owner,
        )

        repository = data.get("repository")
        if repository is None:
            raise FetchError(f"Repository '{name_with_owner}' returned an empty response.")

        pull_requests: List[PullRequestRecord] = []
        for node in (repository.get("pullRequests") or {}).get("nodes") or []:
            created_at = self._parse_datetime(node.get("createdAt"))
            state = node.get("state")

            if created_at is None or not state:
                raise FetchError(
                    "GitHub pull request payload is missing required fields: "
                    f"repository={name_with_owner}, payload={node}"
                )

            pull_requests.append(
                PullRequestRecord(
                    createdAt=created_at,
                    mergedAt=self._parse_datetime(node.get("mergedAt")),
                    authorLogin=(node.get("author") or {}).get("login"),
                    state=str(state),
                    repository=name_with_owner,
                )
            )

        return pull_requests
