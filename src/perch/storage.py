"""Cache storage: URL to file name mapping and file writing."""

import logging
import re
import shutil
from pathlib import Path

from perch.errors import CacheWriteError

logger = logging.getLogger("perch.storage")

GITIGNORE_CONTENT = "*\n!.gitignore\n"

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_/\-]")


def url_to_filename(url: str, root_file_name: str = "_", extension: str | None = "html") -> str:
    """Map a URL to a relative, filesystem-safe file name.

    Pure and deterministic. Every character outside ``[A-Za-z0-9_/-]`` is
    replaced by ``_``; the root URL takes *root_file_name*::

        url_to_filename("/")                 # "_.html"
        url_to_filename("/blog/post-1?x=1")  # "blog/post-1_x_1.html"
        url_to_filename("/feed", extension=None)  # "feed"

    Distinct URLs can collide (``/a?b`` and ``/a_b``); that is accepted.
    """
    name = _UNSAFE_CHARS_RE.sub("_", url.lstrip("/"))
    if not name:
        name = root_file_name
    if extension:
        return f"{name}.{extension}"
    return name


class CacheStorage:
    """The static files directory.

    Creates directories with ``dir_mode`` and re-applies ``file_mode`` to
    every written file, since the process umask may have narrowed the
    mode the file was created with.
    """

    __slots__ = ("dir_mode", "directory", "file_mode")

    def __init__(self, directory: str | Path, *, dir_mode: int = 0o755, file_mode: int = 0o644) -> None:
        self.directory = Path(directory)
        self.dir_mode = dir_mode
        self.file_mode = file_mode

    def path(self, file_name: str) -> Path:
        """Absolute location of *file_name* inside the storage directory."""
        return self.directory / file_name

    def write(self, path: Path, content: bytes | str) -> int:
        """Write *content* to *path*, creating parent directories.

        Overwrites any existing file. Returns the number of bytes written.
        Raises ``CacheWriteError`` when the filesystem refuses.
        """
        data = content.encode("utf-8") if isinstance(content, str) else content
        logger.info("Create: %s", path)
        try:
            self._ensure_directory(path.parent)
            path.write_bytes(data)
            path.chmod(self.file_mode)
        except OSError as exc:
            raise CacheWriteError(path=path, reason=exc.strerror or str(exc)) from exc
        return len(data)

    def _ensure_directory(self, directory: Path) -> None:
        if directory.is_dir():
            return
        missing: list[Path] = []
        current = directory
        while not current.exists():
            missing.append(current)
            current = current.parent
        for parent in reversed(missing):
            logger.info("Create: %s", parent)
            parent.mkdir()
            # mkdir(mode=...) is masked by the umask
            parent.chmod(self.dir_mode)

    def write_gitignore(self) -> Path:
        """Mark the directory as disposable for git."""
        path = self.path(".gitignore")
        self.write(path, GITIGNORE_CONTENT)
        return path

    def clean(self) -> bool:
        """Remove everything inside the directory, keeping the directory.

        Returns ``False`` (and does nothing) when the directory does not exist.
        """
        if not self.directory.is_dir():
            return False
        logger.info("Clean: %s", self.directory)
        for child in self.directory.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        return True
