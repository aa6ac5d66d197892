"""
Ownership transfer and privilege drop.

Both operations either fully succeed or report failure; callers decide
whether a failure is fatal (switching user always is).
"""
import logging
import os
import pwd
from typing import Optional

logger = logging.getLogger(__name__)


class IdentityManager:
    """OS-level identity operations for the executor's user."""

    @staticmethod
    def _lookup(user: str) -> Optional[pwd.struct_passwd]:
        try:
            return pwd.getpwnam(user)
        except KeyError:
            logger.error(f"Unknown user: {user}")
            return None

    def transfer_ownership(self, path: str, user: str) -> bool:
        """
        Change the owner of path to user (and the user's primary group).

        Args:
            path: File or directory to chown
            user: Target user name

        Returns:
            True if ownership was transferred
        """
        passwd = self._lookup(user)
        if passwd is None:
            return False

        try:
            os.chown(path, passwd.pw_uid, passwd.pw_gid)
        except OSError as e:
            logger.error(f"Failed to chown {path} to {user}: {e}")
            return False

        return True

    def switch_user(self, user: str) -> bool:
        """
        Drop the process identity to user.

        Supplementary groups and gid are set before uid; once the uid is
        dropped the process can no longer change its groups.

        Returns:
            True if the process now runs as user
        """
        passwd = self._lookup(user)
        if passwd is None:
            return False

        try:
            os.initgroups(user, passwd.pw_gid)
            os.setgid(passwd.pw_gid)
            os.setuid(passwd.pw_uid)
        except OSError as e:
            logger.error(f"Failed to switch to user {user}: {e}")
            return False

        return True
