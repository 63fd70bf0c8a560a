"""
Directory traversal and file search.

traverse_directory() is the shared walk used by pattern search, content
search and project analysis. fuzzy_search_files() has its own walk because
it scores directories as candidates and applies scan budgets.

Fuzzy scoring
-------------
    exact match            -> 1.0
    substring containment  -> 0.9 * len(query) / len(target)
    otherwise              -> 1 - levenshtein / max_len
                              + 0.1 per in-order character match
                              + 0.2 if a [space . - _] token starts with query[:3]
                              (capped at 1.0)

Each candidate is scored on its filename, its parent directory (x0.7) and its
relative path (x0.9); the best of the three is kept.
"""

import asyncio
import functools
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from Levenshtein import distance as levenshtein_distance

from agent.errors import FileOperationError
from tools.file_cache import FUZZY_SEARCH_THRESHOLD
from tools.file_operations import FileAccess, is_likely_binary, iso_timestamp

logger = logging.getLogger(__name__)

DEFAULT_TRAVERSAL_DEPTH = 10
DEFAULT_MAX_SEARCH_DEPTH = 8
YIELD_EVERY = 50
MAX_MATCHES_PER_FILE = 5
LARGE_FILE_BYTES = 1024 * 1024

MATCH_TYPE_ORDER = {"exact": 4, "substring": 3, "path": 2, "fuzzy": 1}
_WORD_SPLIT = re.compile(r"[\s\-_.]")


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

FileVisitFn = Callable[[str, str, os.stat_result], Awaitable[Optional[bool]]]
DirVisitFn = Callable[[str, str], Awaitable[Optional[bool]]]


@dataclass
class DirectoryVisitor:
    """Callbacks for traverse_directory.

    Returning False from visit_file or visit_directory stops the whole walk.
    max_depth=0 visits the root's entries without descending.
    """
    visit_file: Optional[FileVisitFn] = None
    visit_directory: Optional[DirVisitFn] = None
    should_enter_directory: Optional[Callable[[str, str], bool]] = None
    max_depth: int = DEFAULT_TRAVERSAL_DEPTH
    include_hidden: bool = False
    file_extensions: Optional[Sequence[str]] = None


def _list_entries(path: str) -> List[tuple]:
    """(name, is_file, is_dir) sorted by name for a stable walk order."""
    with os.scandir(path) as it:
        entries = [(e.name, e.is_file(), e.is_dir()) for e in it]
    entries.sort(key=lambda e: e[0])
    return entries


async def traverse_directory(root_path: str, visitor: DirectoryVisitor) -> None:
    root = os.path.abspath(root_path)
    extensions = list(visitor.file_extensions or [])

    async def walk(current: str, depth: int) -> bool:
        if depth > visitor.max_depth:
            return True
        try:
            entries = await asyncio.to_thread(_list_entries, current)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", current, e)
            return True

        for name, is_file, is_dir in entries:
            if not visitor.include_hidden and name.startswith("."):
                continue
            item_path = os.path.join(current, name)
            rel_path = os.path.relpath(item_path, root)

            if is_file:
                if extensions and os.path.splitext(name)[1] not in extensions:
                    continue
                try:
                    st = await asyncio.to_thread(os.stat, item_path)
                except OSError:
                    continue
                if visitor.visit_file is not None:
                    if await visitor.visit_file(item_path, rel_path, st) is False:
                        return False
            elif is_dir:
                if visitor.visit_directory is not None:
                    if await visitor.visit_directory(item_path, rel_path) is False:
                        return False
                enter = (
                    visitor.should_enter_directory(item_path, rel_path)
                    if visitor.should_enter_directory is not None
                    else True
                )
                if enter and not await walk(item_path, depth + 1):
                    return False
        return True

    await walk(root, 0)


# ---------------------------------------------------------------------------
# Fuzzy scoring
# ---------------------------------------------------------------------------

def calculate_fuzzy_score(query: str, target: str, case_sensitive: bool = False) -> float:
    q = query if case_sensitive else query.lower()
    t = target if case_sensitive else target.lower()

    if q == t:
        return 1.0
    if q in t:
        return 0.9 * (len(q) / len(t))

    max_len = max(len(q), len(t))
    if max_len == 0:
        return 1.0

    similarity = 1 - levenshtein_distance(q, t) / max_len

    sequence_bonus = 0.0
    qi = 0
    for ch in t:
        if qi >= len(q):
            break
        if ch == q[qi]:
            sequence_bonus += 0.1
            qi += 1

    prefix = q[:3]
    boundary_bonus = 0.2 if any(word.startswith(prefix) for word in _WORD_SPLIT.split(t)) else 0.0

    return min(1.0, similarity + sequence_bonus + boundary_bonus)


# ---------------------------------------------------------------------------
# Fuzzy search
# ---------------------------------------------------------------------------

@dataclass
class FuzzySearchOptions:
    query: str
    directory_path: str
    file_extensions: List[str] = field(default_factory=list)
    max_results: int = 50
    case_sensitive: bool = False
    min_score: float = FUZZY_SEARCH_THRESHOLD
    include_directories: bool = False


@dataclass
class FuzzySearchResult:
    file_path: str
    relative_path: str
    filename: str
    directory: str
    size: int
    last_modified: str
    score: float
    match_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "relative_path": self.relative_path,
            "filename": self.filename,
            "directory": self.directory,
            "size": self.size,
            "last_modified": self.last_modified,
            "score": self.score,
            "match_type": self.match_type,
        }


def _classify(query: str, filename: str, filename_score: float, path_score: float) -> str:
    if filename_score == 1.0 or path_score == 1.0:
        return "exact"
    if filename_score > 0.8 or query.lower() in filename.lower():
        return "substring"
    if path_score > filename_score:
        return "path"
    return "fuzzy"


def _rank(results: List[FuzzySearchResult]) -> List[FuzzySearchResult]:
    """Score desc (ties within 0.1 are equal), then match type, then shorter path."""
    def compare(a: FuzzySearchResult, b: FuzzySearchResult) -> int:
        if abs(a.score - b.score) > 0.1:
            return -1 if a.score > b.score else 1
        type_diff = MATCH_TYPE_ORDER[b.match_type] - MATCH_TYPE_ORDER[a.match_type]
        if type_diff:
            return type_diff
        return len(a.relative_path) - len(b.relative_path)

    return sorted(results, key=functools.cmp_to_key(compare))


async def fuzzy_search_files(
    options: FuzzySearchOptions,
    max_search_depth: int = DEFAULT_MAX_SEARCH_DEPTH,
) -> List[FuzzySearchResult]:
    root = os.path.abspath(options.directory_path)
    query = options.query
    result_cap = options.max_results * 2
    scan_cap = options.max_results * 10
    results: List[FuzzySearchResult] = []
    processed = 0

    def exhausted() -> bool:
        return len(results) >= result_cap or processed >= scan_cap

    async def score_entry(item_path: str, name: str, is_dir: bool) -> None:
        rel_path = os.path.relpath(item_path, root)
        directory = os.path.dirname(rel_path) or "."

        filename_score = calculate_fuzzy_score(query, name, options.case_sensitive)
        directory_score = calculate_fuzzy_score(query, directory, options.case_sensitive) * 0.7
        path_score = calculate_fuzzy_score(query, rel_path, options.case_sensitive) * 0.9
        best = max(filename_score, directory_score, path_score)
        if best < options.min_score:
            return

        try:
            st = await asyncio.to_thread(os.stat, item_path)
        except OSError:
            return
        results.append(FuzzySearchResult(
            file_path=item_path,
            relative_path=rel_path,
            filename=name,
            directory=directory,
            size=st.st_size,
            last_modified=iso_timestamp(st.st_mtime),
            score=best,
            match_type=_classify(query, name, filename_score, path_score),
        ))

    async def search(current: str, depth: int) -> None:
        nonlocal processed
        if depth > max_search_depth or exhausted():
            return
        try:
            entries = await asyncio.to_thread(_list_entries, current)
        except OSError:
            return

        for i, (name, is_file, is_dir) in enumerate(entries):
            if exhausted():
                break
            if i and i % YIELD_EVERY == 0:
                await asyncio.sleep(0)

            item_path = os.path.join(current, name)
            hidden = name.startswith(".")

            if is_file or (is_dir and options.include_directories):
                processed += 1
                if not (hidden and not query.startswith(".")):
                    wanted = True
                    if is_file and options.file_extensions:
                        wanted = os.path.splitext(name)[1] in options.file_extensions
                    if wanted:
                        await score_entry(item_path, name, is_dir)

            if is_dir and not hidden:
                await search(item_path, depth + 1)

    await search(root, 0)
    return _rank(results)[: options.max_results]


# ---------------------------------------------------------------------------
# Pattern search
# ---------------------------------------------------------------------------

@dataclass
class PatternSearchResult:
    results: List[Dict[str, Any]]
    truncated: bool


def compile_wildcard(pattern: str, case_sensitive: bool = False) -> "re.Pattern[str]":
    """'*' matches any run of characters; everything else is literal. Anchored."""
    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(f"^{body}$", 0 if case_sensitive else re.IGNORECASE)


async def search_files_by_pattern(
    directory_path: str,
    pattern: str,
    file_extensions: Optional[Sequence[str]] = None,
    max_results: int = 50,
    case_sensitive: bool = False,
    include_directories: bool = False,
) -> PatternSearchResult:
    regex = compile_wildcard(pattern, case_sensitive)
    results: List[Dict[str, Any]] = []

    async def visit_file(path: str, rel_path: str, st: os.stat_result) -> Optional[bool]:
        if regex.match(os.path.basename(path)):
            results.append({
                "file_path": path,
                "relative_path": rel_path,
                "size": st.st_size,
                "last_modified": iso_timestamp(st.st_mtime),
            })
        return False if len(results) >= max_results else None

    async def visit_directory(path: str, rel_path: str) -> Optional[bool]:
        if not include_directories:
            return None
        if regex.match(os.path.basename(path)):
            try:
                st = await asyncio.to_thread(os.stat, path)
            except OSError:
                return None
            results.append({
                "file_path": path,
                "relative_path": rel_path,
                "size": 0,
                "last_modified": iso_timestamp(st.st_mtime),
            })
        return False if len(results) >= max_results else None

    await traverse_directory(directory_path, DirectoryVisitor(
        visit_file=visit_file,
        visit_directory=visit_directory,
        max_depth=DEFAULT_TRAVERSAL_DEPTH,
        file_extensions=file_extensions,
    ))
    return PatternSearchResult(results=results, truncated=len(results) >= max_results)


# ---------------------------------------------------------------------------
# Content search
# ---------------------------------------------------------------------------

async def search_file_content(
    files: FileAccess,
    directory_path: str,
    search_term: str,
    file_extensions: Optional[Sequence[str]] = None,
    max_results: int = 20,
    case_sensitive: bool = False,
) -> List[Dict[str, Any]]:
    """Literal per-line search. At most MAX_MATCHES_PER_FILE matches are reported per file."""
    regex = re.compile(re.escape(search_term), 0 if case_sensitive else re.IGNORECASE)
    results: List[Dict[str, Any]] = []

    async def visit_file(path: str, rel_path: str, st: os.stat_result) -> Optional[bool]:
        if len(results) >= max_results:
            return False
        if await is_likely_binary(path):
            return None
        try:
            content = (await files.read_file(path)).content
        except FileOperationError as e:
            logger.debug("Skipping %s during content search: %s", path, e)
            return None

        matches = []
        for line_number, line in enumerate(content.split("\n"), 1):
            match = regex.search(line)
            if match:
                matches.append({
                    "line_number": line_number,
                    "line_content": line.strip(),
                    "match_position": match.start(),
                })
        if matches:
            results.append({
                "file_path": path,
                "relative_path": rel_path,
                "matches": matches[:MAX_MATCHES_PER_FILE],
                "total_matches": len(matches),
            })
        return None

    await traverse_directory(directory_path, DirectoryVisitor(
        visit_file=visit_file,
        max_depth=DEFAULT_TRAVERSAL_DEPTH,
        file_extensions=file_extensions,
    ))
    return results


# ---------------------------------------------------------------------------
# Project analysis
# ---------------------------------------------------------------------------

async def analyze_project(project_path: str, max_depth: int = 5) -> Dict[str, Any]:
    total_files = 0
    total_size = 0
    binary_files = 0
    text_files = 0
    file_types: Dict[str, Dict[str, int]] = {}
    directories = set()
    large_files: List[Dict[str, Any]] = []

    async def visit_file(path: str, rel_path: str, st: os.stat_result) -> None:
        nonlocal total_files, total_size, binary_files, text_files
        ext = os.path.splitext(os.path.basename(path))[1] or "(no extension)"
        total_files += 1
        total_size += st.st_size

        bucket = file_types.setdefault(ext, {"count": 0, "size": 0})
        bucket["count"] += 1
        bucket["size"] += st.st_size

        if st.st_size > LARGE_FILE_BYTES:
            large_files.append({"path": rel_path, "size": st.st_size})

        if await is_likely_binary(path):
            binary_files += 1
        else:
            text_files += 1

    async def visit_directory(path: str, rel_path: str) -> None:
        directories.add(rel_path)

    await traverse_directory(project_path, DirectoryVisitor(
        visit_file=visit_file,
        visit_directory=visit_directory,
        max_depth=max_depth,
    ))

    large_files.sort(key=lambda f: f["size"], reverse=True)
    top_types = sorted(file_types.items(), key=lambda kv: kv[1]["count"], reverse=True)[:20]

    return {
        "summary": {
            "total_files": total_files,
            "total_size": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "binary_files": binary_files,
            "text_files": text_files,
        },
        "file_types": dict(top_types),
        "large_files": large_files[:10],
        "total_directories": len(directories),
    }
