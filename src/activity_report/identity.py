"""Attribution of commits and pull requests to the target user."""

from __future__ import annotations

from typing import Optional

from .models import AuthorMatchMode, CommitRecord


class AuthorMatcher:
    """Decide whether a commit was authored by the target user.

    ``IDENTITY`` mode compares the platform account linked to the commit (node id
    or login). Commits whose author email is not linked to any account never
    match in this mode.

    ``EMAIL`` mode checks whether the username occurs in the author email,
    ignoring case. It also attributes commits made from unlinked addresses, but
    produces false positives for short usernames contained in other people's
    addresses and misses addresses that do not contain the username at all.
    """

    def __init__(self, mode: AuthorMatchMode, username: str, user_id: Optional[str] = None) -> None:
        self.mode = mode
        self.username = username
        self.user_id = user_id

    @property
    def server_side_author_id(self) -> Optional[str]:
        """Node id usable as a server-side history filter, if the mode allows one."""
        if self.mode is AuthorMatchMode.IDENTITY:
            return self.user_id
        return None

    def matches_login(self, login: Optional[str]) -> bool:
        return login is not None and login.lower() == self.username.lower()

    def matches(self, record: CommitRecord) -> bool:
        if self.mode is AuthorMatchMode.EMAIL:
            return bool(record.authorEmail) and self.username.lower() in record.authorEmail.lower()

        if self.user_id and record.authorId == self.user_id:
            return True
        return self.matches_login(record.authorLogin)
