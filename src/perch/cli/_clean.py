"""``perch clean`` — wipe the static files directory."""

import argparse

from perch.storage import CacheStorage


def confirm(prompt: str, *, default: bool = True) -> bool:
    """Ask a yes/no question on the terminal."""
    suffix = " [Y/n] " if default else " [y/N] "
    try:
        answer = input(prompt + suffix).strip().lower()
    except EOFError:
        return default
    if not answer:
        return default
    return answer in ("y", "yes")


def run_clean(args: argparse.Namespace, storage: CacheStorage) -> bool:
    """Clean *storage* after confirmation. Returns whether anything was removed.

    Does nothing (and asks nothing) when the directory does not exist.
    """
    if not storage.directory.is_dir():
        return False
    if not args.yes and not confirm(
        f"{storage.directory} directory will be cleaned. Do you wish to continue?"
    ):
        return False
    return storage.clean()
