"""Source walker: enumerates candidate route files under a root directory."""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path

from api_doc_gen.errors import WalkError

logger = logging.getLogger(__name__)


def _translate(pattern: str) -> str:
    """Translate a glob into a regex body.

    ``**`` spans directories, ``*`` and ``?`` stay within one path segment,
    ``[...]`` is a character class and ``{a,b}`` an alternation.
    """
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1:end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        elif c == "{":
            end = pattern.find("}", i)
            if end == -1:
                out.append(re.escape(c))
            else:
                options = pattern[i + 1:end].split(",")
                out.append("(?:" + "|".join(_translate(opt) for opt in options) + ")")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern:
    return re.compile(r"(?s:" + _translate(pattern.lstrip("/")) + r")\Z")


def matches_any(rel_path: str, patterns: list[str] | tuple[str, ...]) -> bool:
    return any(compile_glob(p).match(rel_path) for p in patterns)


def walk_sources(root: Path | str, include: list[str], exclude: list[str] | None = None) -> list[Path]:
    """Return sorted absolute paths under *root* matching *include* but not *exclude*.

    Globs are matched against the POSIX path relative to *root*. Exclusion
    always wins. Symlinked directories are followed unless they lead back
    to a directory that was already visited.

    Raises WalkError if *root* is missing or unreadable.
    """
    root = Path(root)
    exclude = list(exclude or [])
    if not root.exists():
        raise WalkError(f"Source root does not exist: {root}")
    if not root.is_dir():
        raise WalkError(f"Source root is not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise WalkError(f"Source root is not readable: {root}")

    root = root.resolve()
    visited: set[str] = set()
    found: dict[str, str] = {}  # real path -> reported path

    def on_error(err: OSError) -> None:
        logger.warning("Skipping unreadable directory %s: %s", err.filename, err.strerror)

    for dirpath, dirnames, filenames in os.walk(root, followlinks=True, onerror=on_error):
        real = os.path.realpath(dirpath)
        if real in visited:
            logger.debug("Not following %s again (symlink cycle or alias of %s)", dirpath, real)
            dirnames[:] = []
            continue
        visited.add(real)

        rel_dir = Path(dirpath).relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else rel_dir + "/"
        dirnames[:] = sorted(d for d in dirnames if not matches_any(f"{prefix}{d}/", exclude))

        for name in filenames:
            rel = prefix + name
            if not matches_any(rel, include) or matches_any(rel, exclude):
                continue
            full = os.path.join(dirpath, name)
            real_file = os.path.realpath(full)
            if real_file not in found or full < found[real_file]:
                found[real_file] = full

    return [Path(p) for p in sorted(found.values())]
