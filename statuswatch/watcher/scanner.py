"""
Directory scanner for monitored folders.

Lists the entry names of the import and failed directories. Scanning is
fail-open: a missing, non-directory or unreadable path is reported as an
empty listing instead of raising, so reconciliation proceeds with degraded
data rather than halting.
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Set


@dataclass(frozen=True)
class DirectoryListing:
    """Result of listing one monitored directory."""

    path: str
    names: FrozenSet[str] = field(default_factory=frozenset)
    accessible: bool = True
    error: Optional[str] = None


class DirectoryScanner:
    """
    Top-level, non-recursive directory lister.

    Only non-directory entries are returned; subdirectories of a monitored
    folder are never tracked. Matching is by base name, so the scanner
    returns names rather than paths.
    """

    def scan(self, directory_path: str) -> DirectoryListing:
        """
        List a directory, capturing any failure instead of raising.

        Returns:
            DirectoryListing with accessible=False and an error message if
            the directory could not be read
        """
        if not directory_path:
            return DirectoryListing(
                path="", accessible=False, error="Directory path is not configured"
            )

        names: Set[str] = set()
        try:
            with os.scandir(directory_path) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir():
                            continue
                    except OSError:
                        # Entry vanished or is unreadable; list it by name anyway
                        pass
                    names.add(entry.name)
        except FileNotFoundError:
            return DirectoryListing(
                path=directory_path,
                accessible=False,
                error="Directory does not exist",
            )
        except NotADirectoryError:
            return DirectoryListing(
                path=directory_path,
                accessible=False,
                error="Path is not a directory",
            )
        except OSError as e:
            return DirectoryListing(
                path=directory_path,
                accessible=False,
                error=f"Directory not readable: {e}",
            )

        return DirectoryListing(path=directory_path, names=frozenset(names))

    def list(self, directory_path: str) -> Set[str]:
        """
        List entry names of a directory.

        Returns:
            Set of names; empty if the directory is missing or unreadable
        """
        return set(self.scan(directory_path).names)
