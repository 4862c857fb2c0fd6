# /folder_sync.py
"""
Folder Sync
- One-way periodic mirror of a source folder into a replica folder.
- Each cycle is a full, stateless re-scan of both trees:
  - create directories missing from the replica,
  - copy new files and files whose SHA-256 differs,
  - remove replica entries that have no counterpart in the source.
- Log lines are "[YYYY-MM-DD HH:MM:SS] message", appended to the log file and
  echoed to stdout.
- Styled console output (log file is always plain):
  - created directories light brown
  - copies green
  - removals and skips orange
  - errors red
- Symbolic links and special files are not mirrored; each one is reported once.
- Optional gitignore-style ignore rules (--ignore / --ignore-file).
- Optional watch mode (--watch): a source change starts the next cycle early.
- SIGINT / SIGTERM stop the loop between cycles (exit 0). Losing the source
  stops it with exit 1.

Usage
  pip install pathspec watchdog colorama
  python folder_sync.py /src /replica 30 sync.log
  python folder_sync.py /src /replica 30 sync.log --ignore "*.tmp" --watch
"""

from __future__ import annotations

import argparse
import enum
import hashlib
import logging
import os
import shutil
import signal
import stat
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from colorama import just_fix_windows_console
from pathspec import PathSpec
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

HASH_CHUNK_SIZE = 1024 * 1024

LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

COMPLETE_MESSAGE = "Synchronization complete. All files and directories are synchronized."
SOURCE_LOST_MESSAGE = "Source directory has been deleted or is inaccessible. Exiting..."


# -------------------------
# Console styling
# -------------------------

class Ansi:
    RESET = "\x1b[0m"
    RED = "\x1b[31m"
    GREEN = "\x1b[32m"
    ORANGE = "\x1b[38;5;208m"
    WHITE = "\x1b[97m"
    LIGHT_BROWN = "\x1b[33m"


ACTION_COLORS = {
    "MKDIR": Ansi.LIGHT_BROWN,
    "COPY": Ansi.GREEN,
    "REMOVE": Ansi.ORANGE,
    "SKIP": Ansi.ORANGE,
}


def _supports_color(stream) -> bool:
    try:
        return hasattr(stream, "isatty") and stream.isatty()
    except Exception:
        return False


class ColorizingFormatter(logging.Formatter):
    def __init__(self, use_color: bool, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.use_color:
            return base

        if record.levelno >= logging.ERROR:
            return f"{Ansi.RED}{base}{Ansi.RESET}"

        action = getattr(record, "action", None)
        is_dir = getattr(record, "is_dir", None)
        path_text = getattr(record, "path_text", None)

        if action:
            # "Copied file: a to b" -> color "Copied file"
            label, sep, _ = record.getMessage().partition(": ")
            action_color = ACTION_COLORS.get(action, "")
            if record.levelno >= logging.WARNING:
                action_color = Ansi.ORANGE
            if sep and action_color:
                base = base.replace(label, f"{action_color}{label}{Ansi.RESET}", 1)

        if path_text and path_text in base:
            pcolor = Ansi.LIGHT_BROWN if is_dir else Ansi.WHITE
            base = base.replace(path_text, f"{pcolor}{path_text}{Ansi.RESET}")

        return base


# -------------------------
# Run log
# -------------------------

class SyncLog:
    """
    Run log shared by the sync loop and everything it calls.

    Every message becomes one "[timestamp] message" line in the log file and the
    same line on the console. Writing both happens under a single lock so lines
    from different threads never interleave. The log must be opened before use
    and closed at shutdown; it also works as a context manager.
    """

    def __init__(self, log_path: Path, name: str = "folder_sync", stream=None):
        self.log_path = Path(log_path)
        self.name = name
        self.stream = stream
        self._logger: Optional[logging.Logger] = None
        self._lock = threading.Lock()
        self._warned: set[str] = set()
        self._warned_guard = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._logger is not None

    def open(self) -> SyncLog:
        if self._logger is not None:
            return self

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        stream = self.stream if self.stream is not None else sys.stdout
        use_color = _supports_color(stream)
        if use_color:
            just_fix_windows_console()

        logger = logging.getLogger(self.name)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        for stale in list(logger.handlers):
            logger.removeHandler(stale)
            stale.close()

        fh = logging.FileHandler(self.log_path, mode="a", encoding="utf-8")
        fh.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        fh.setLevel(logging.INFO)

        ch = logging.StreamHandler(stream)
        ch.setLevel(logging.INFO)
        ch.setFormatter(ColorizingFormatter(use_color=use_color, fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))

        logger.addHandler(fh)
        logger.addHandler(ch)
        self._logger = logger
        return self

    def close(self) -> None:
        if self._logger is None:
            return
        with self._lock:
            for handler in list(self._logger.handlers):
                handler.flush()
                self._logger.removeHandler(handler)
                handler.close()
            self._logger = None

    def __enter__(self) -> SyncLog:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def log(self, message: str, level: int = logging.INFO, extra: Optional[dict] = None) -> None:
        if self._logger is None:
            raise RuntimeError(f"log {self.log_path} is not open")
        with self._lock:
            self._logger.log(level, message, extra=extra)

    def log_action(
        self,
        action: str,
        message: str,
        path: Optional[Path] = None,
        is_dir: Optional[bool] = None,
        level: int = logging.INFO,
    ) -> None:
        extra = {"action": action}
        if path is not None:
            extra["path_text"] = str(path)
            extra["is_dir"] = bool(is_dir)
        self.log(message, level=level, extra=extra)

    def warn_once(self, key: str, message: str, path: Optional[Path] = None) -> bool:
        """Log a warning the first time `key` is seen during this run. Returns whether it was logged."""
        with self._warned_guard:
            if key in self._warned:
                return False
            self._warned.add(key)
        self.log_action("SKIP", message, path=path, is_dir=False, level=logging.WARNING)
        return True


# -------------------------
# Filesystem model
# -------------------------

class EntryKind(enum.Enum):
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


@dataclass(frozen=True)
class ScanEntry:
    path: Path
    relative: Path
    kind: EntryKind


@dataclass(frozen=True)
class ScanError:
    path: Path
    error: OSError


ScanItem = Union[ScanEntry, ScanError]


def kind_of(path: Path) -> Optional[EntryKind]:
    """Kind of whatever sits at `path` (symlinks not followed), or None if nothing does."""
    try:
        mode = os.lstat(path).st_mode
    except (FileNotFoundError, NotADirectoryError):
        return None
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    return EntryKind.OTHER


def _entry_kind(entry: os.DirEntry) -> EntryKind:
    if entry.is_symlink():
        return EntryKind.OTHER
    if entry.is_dir(follow_symlinks=False):
        return EntryKind.DIRECTORY
    if entry.is_file(follow_symlinks=False):
        return EntryKind.FILE
    return EntryKind.OTHER


class IgnoreMatcher:
    """gitignore-style rules matched against paths relative to a tree root."""

    def __init__(self, patterns: list[str]):
        self.patterns = list(patterns)
        self.spec = PathSpec.from_lines("gitwildmatch", self.patterns)

    def is_ignored(self, relative: Path, is_dir: bool = False) -> bool:
        rel_posix = Path(relative).as_posix()
        if is_dir and not rel_posix.endswith("/"):
            rel_posix += "/"
        return self.spec.match_file(rel_posix)


def load_ignore_file(path: Path) -> list[str]:
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [ln.strip() for ln in lines if ln.strip() and not ln.strip().startswith("#")]


def scan(root: Path, ignore: Optional[IgnoreMatcher] = None) -> Iterator[ScanItem]:
    """
    Walk everything below `root`, yielding a ScanEntry per entry.

    A directory is always yielded before anything inside it. Symlinks are
    reported as EntryKind.OTHER and never followed. Ignored entries are
    skipped together with their subtree. A directory that cannot be listed
    (the root included) is yielded as a ScanError and the walk goes on.

    Each directory is listed completely before its entries are handed out, so
    callers may create or remove entries while iterating. Changes made by
    others during the walk may or may not show up.
    """
    root = Path(root)
    pending = [root]
    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            yield ScanError(directory, e)
            continue

        subdirs = []
        for entry in entries:
            path = Path(entry.path)
            try:
                kind = _entry_kind(entry)
            except OSError as e:
                yield ScanError(path, e)
                continue

            relative = path.relative_to(root)
            if ignore is not None and ignore.is_ignored(relative, is_dir=kind is EntryKind.DIRECTORY):
                continue
            if kind is EntryKind.DIRECTORY:
                subdirs.append(path)
            yield ScanEntry(path, relative, kind)

        pending.extend(reversed(subdirs))


def count(root: Path, ignore: Optional[IgnoreMatcher] = None) -> int:
    """Number of regular files and directories below `root`."""
    return sum(
        1
        for item in scan(root, ignore)
        if isinstance(item, ScanEntry) and item.kind is not EntryKind.OTHER
    )


def sha256_file(path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    h = hashlib.sha256()
    with Path(path).open("rb") as f:
        while True:
            b = f.read(chunk_size)
            if not b:
                break
            h.update(b)
    return h.hexdigest()


def files_equal(a: Path, b: Path) -> bool:
    """
    True when both files hold the same bytes.

    Sizes are compared first; equal sizes fall back to comparing SHA-256
    digests. Timestamps are never consulted. Raises OSError if either file
    cannot be read.
    """
    if Path(a).stat().st_size != Path(b).stat().st_size:
        return False
    return sha256_file(a) == sha256_file(b)


def remove_entry(path: Path) -> bool:
    """Remove a file, symlink or whole directory tree. Returns False if nothing was there."""
    kind = kind_of(path)
    if kind is None:
        return False
    if kind is EntryKind.DIRECTORY:
        shutil.rmtree(path)
    else:
        Path(path).unlink()
    return True


def _log_scan_error(log: SyncLog, item: ScanError) -> None:
    log.log(f"Filesystem error: cannot scan {item.path}: {item.error}", level=logging.ERROR)


# -------------------------
# Reconcilers
# -------------------------

def mirror_directories(
    source: Path,
    replica: Path,
    log: SyncLog,
    ignore: Optional[IgnoreMatcher] = None,
) -> bool:
    """Create every source directory that is missing from the replica. Returns whether anything changed."""
    changed = False
    for item in scan(source, ignore):
        if isinstance(item, ScanError):
            _log_scan_error(log, item)
            continue
        if item.kind is not EntryKind.DIRECTORY:
            continue

        dst = replica / item.relative
        try:
            existing = kind_of(dst)
            if existing is EntryKind.DIRECTORY:
                continue
            if existing is not None:
                remove_entry(dst)
                log.log_action("REMOVE", f"Removed: {dst}", path=dst, is_dir=False)
                changed = True
            dst.mkdir()
            log.log_action("MKDIR", f"Created directory: {dst}", path=dst, is_dir=True)
            changed = True
        except OSError as e:
            log.log_action(
                "MKDIR",
                f"Filesystem error: cannot create directory {dst}: {e}",
                path=dst,
                is_dir=True,
                level=logging.ERROR,
            )
    return changed


def _differs(src: Path, dst: Path, log: SyncLog) -> bool:
    try:
        return not files_equal(src, dst)
    except OSError as e:
        log.log_action(
            "COPY",
            f"Error: cannot compare {src} with {dst}, copying anyway: {e}",
            path=dst,
            is_dir=False,
            level=logging.WARNING,
        )
        return True


def reconcile_copies(
    source: Path,
    replica: Path,
    log: SyncLog,
    ignore: Optional[IgnoreMatcher] = None,
) -> bool:
    """Copy every source file that is missing from the replica or differs in content."""
    changed = False
    for item in scan(source, ignore):
        if isinstance(item, ScanError):
            _log_scan_error(log, item)
            continue
        if item.kind is EntryKind.DIRECTORY:
            continue
        if item.kind is EntryKind.OTHER:
            log.warn_once(
                str(item.path),
                f"Skipped: {item.path} is a symbolic link or special file and is not mirrored",
                path=item.path,
            )
            continue

        dst = replica / item.relative
        try:
            existing = kind_of(dst)
            if existing is EntryKind.FILE and not _differs(item.path, dst, log):
                continue
            if existing is not None and existing is not EntryKind.FILE:
                remove_entry(dst)
                log.log_action("REMOVE", f"Removed: {dst}", path=dst, is_dir=existing is EntryKind.DIRECTORY)
                changed = True

            shutil.copy2(item.path, dst)
            log.log_action("COPY", f"Copied file: {item.path} to {dst}", path=dst, is_dir=False)
            changed = True
        except OSError as e:
            log.log_action(
                "COPY",
                f"Filesystem error: cannot copy {item.path} to {dst}: {e}",
                path=dst,
                is_dir=False,
                level=logging.ERROR,
            )
    return changed


def _is_stale(source: Path, relative: Path, ignore: Optional[IgnoreMatcher]) -> bool:
    counterpart = kind_of(source / relative)
    if counterpart is None or counterpart is EntryKind.OTHER:
        return True
    return ignore is not None and ignore.is_ignored(relative, is_dir=counterpart is EntryKind.DIRECTORY)


def reconcile_prune(
    source: Path,
    replica: Path,
    log: SyncLog,
    ignore: Optional[IgnoreMatcher] = None,
) -> bool:
    """
    Remove replica entries that have no counterpart in the source.

    Stale entries are collected during the walk and removed afterwards.
    A stale directory goes in one rmtree; nothing below it is scheduled on
    its own.
    """
    stale: list[ScanEntry] = []
    scheduled: set[Path] = set()
    for item in scan(replica):
        if isinstance(item, ScanError):
            _log_scan_error(log, item)
            continue
        if any(parent in scheduled for parent in item.relative.parents):
            continue
        try:
            if not _is_stale(source, item.relative, ignore):
                continue
        except OSError as e:
            log.log(f"Filesystem error: cannot check {source / item.relative}: {e}", level=logging.ERROR)
            continue

        stale.append(item)
        if item.kind is EntryKind.DIRECTORY:
            scheduled.add(item.relative)

    changed = False
    for item in stale:
        try:
            if remove_entry(item.path):
                log.log_action("REMOVE", f"Removed: {item.path}", path=item.path, is_dir=item.kind is EntryKind.DIRECTORY)
                changed = True
        except OSError as e:
            log.log_action(
                "REMOVE",
                f"Filesystem error: cannot remove {item.path}: {e}",
                path=item.path,
                is_dir=item.kind is EntryKind.DIRECTORY,
                level=logging.ERROR,
            )
    return changed


# -------------------------
# Sync cycle
# -------------------------

PHASES = (mirror_directories, reconcile_copies, reconcile_prune)


def run_cycle(
    source: Path,
    replica: Path,
    log: SyncLog,
    ignore: Optional[IgnoreMatcher] = None,
) -> bool:
    """
    One full pass: make sure the replica root exists, then mirror directories,
    copy files and prune stale entries, in that order. Returns whether anything
    in the replica changed.
    """
    changed = False
    try:
        existing = kind_of(replica)
        if existing is None:
            replica.mkdir(parents=True)
            log.log_action("MKDIR", f"Created replica directory: {replica}", path=replica, is_dir=True)
            changed = True
        elif existing is not EntryKind.DIRECTORY:
            log.log(f"Error: Replica path is not a directory: {replica}", level=logging.ERROR)
            return False
    except OSError as e:
        log.log(f"Filesystem error: {e}", level=logging.ERROR)
        return changed

    for phase in PHASES:
        try:
            changed = phase(source, replica, log, ignore) or changed
        except OSError as e:
            log.log(f"Filesystem error: {e}", level=logging.ERROR)
        except Exception as e:
            log.log(f"Error: {e}", level=logging.ERROR)
    return changed


def check_completion(
    source: Path,
    replica: Path,
    log: SyncLog,
    changed: bool,
    ignore: Optional[IgnoreMatcher] = None,
) -> bool:
    """
    Log the completion line when the cycle changed something and both trees
    now hold the same number of files and directories.

    Only counts are compared. Two trees with equal counts but different names
    or contents still pass.
    """
    if not changed:
        return False
    if count(source, ignore) != count(replica):
        return False
    log.log(COMPLETE_MESSAGE)
    return True


# -------------------------
# Run loop
# -------------------------

def source_error(source: Path) -> Optional[str]:
    """Problem with the source root as a log message, or None if it is usable."""
    if not source.exists():
        return "Error: Source path does not exist."
    if not source.is_dir():
        return "Error: Source path is not a directory."
    return None


def remaining_interval(interval_sec: float, elapsed: float) -> float:
    return max(0.0, interval_sec - elapsed)


class SyncLoop:
    """
    Runs a sync cycle every `interval_sec` seconds until stopped.

    The source is revalidated before each cycle. Time spent in a cycle counts
    against the interval; an overrun starts the next cycle at once. A stop
    request is honored between cycles only.
    """

    def __init__(
        self,
        source: Path,
        replica: Path,
        interval_sec: float,
        log: SyncLog,
        ignore: Optional[IgnoreMatcher] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.replica = replica
        self.interval_sec = interval_sec
        self.log = log
        self.ignore = ignore
        self.clock = clock
        self.stop_event = threading.Event()
        self._wake = threading.Event()

    def request_stop(self) -> None:
        self.stop_event.set()
        self._wake.set()

    def wake(self) -> None:
        self._wake.set()

    def run(self) -> int:
        while not self.stop_event.is_set():
            problem = source_error(self.source)
            if problem:
                self.log.log(problem, level=logging.ERROR)
                self.log.log(SOURCE_LOST_MESSAGE, level=logging.ERROR)
                return 1

            start = self.clock()
            self._tick()
            elapsed = self.clock() - start
            self._sleep(remaining_interval(self.interval_sec, elapsed))

        self.log.log("Synchronization stopped.")
        return 0

    def _tick(self) -> None:
        try:
            changed = run_cycle(self.source, self.replica, self.log, self.ignore)
            check_completion(self.source, self.replica, self.log, changed, self.ignore)
        except Exception as e:
            self.log.log(f"Error: {e}", level=logging.ERROR)

    def _sleep(self, seconds: float) -> None:
        self._wake.wait(seconds)
        self._wake.clear()


# -------------------------
# Watch mode
# -------------------------

class SourceChangeHandler(FileSystemEventHandler):
    """Wakes the sync loop when something under the source is created, modified, deleted or moved."""

    def __init__(self, loop: SyncLoop, source_root: Path, ignore: Optional[IgnoreMatcher] = None):
        self.loop = loop
        self.source_root = source_root
        self.ignore = ignore

    def _is_ignored(self, raw_path, is_dir: bool) -> bool:
        if self.ignore is None:
            return False
        try:
            rel = Path(os.fsdecode(raw_path)).relative_to(self.source_root)
        except ValueError:
            return False
        return self.ignore.is_ignored(rel, is_dir=is_dir)

    def _changed(self, event) -> None:
        is_dir = bool(event.is_directory)
        # a move only matters if one of its ends is mirrored
        paths = [event.src_path]
        if getattr(event, "dest_path", None):
            paths.append(event.dest_path)
        if all(self._is_ignored(p, is_dir) for p in paths):
            return
        self.loop.wake()

    on_created = _changed
    on_modified = _changed
    on_deleted = _changed
    on_moved = _changed


def start_watcher(loop: SyncLoop, source: Path, ignore: Optional[IgnoreMatcher] = None) -> Observer:
    observer = Observer()
    observer.schedule(SourceChangeHandler(loop, source, ignore), str(source), recursive=True)
    observer.start()
    return observer


# -------------------------
# Config / CLI
# -------------------------

class ConfigError(ValueError):
    """Invalid command-line configuration."""


class UsageArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid interval {raw!r}: expected whole seconds")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"invalid interval {raw!r}: must be greater than zero")
    return value


@dataclass(frozen=True)
class AppConfig:
    source_dir: Path
    replica_dir: Path
    interval_sec: int
    log_file: Path
    ignore_patterns: tuple[str, ...] = ()
    watch: bool = False


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = UsageArgumentParser(
        prog="folder-sync",
        description="Periodically mirror a source folder into a replica folder.",
    )
    p.add_argument("source", help="Folder to mirror (never modified).")
    p.add_argument("replica", help="Folder kept identical to the source (created if missing).")
    p.add_argument("interval", type=positive_int, help="Seconds between synchronization cycles.")
    p.add_argument("log_file", help="File the run log is appended to.")
    p.add_argument("--ignore", action="append", default=[], metavar="PATTERN", help="gitignore-style pattern to leave out (repeatable).")
    p.add_argument("--ignore-file", default=None, help="File with one ignore pattern per line.")
    p.add_argument("--watch", action="store_true", help="Start the next cycle early when the source changes.")
    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> AppConfig:
    patterns = list(args.ignore)
    if args.ignore_file:
        try:
            patterns.extend(load_ignore_file(Path(args.ignore_file)))
        except OSError as e:
            raise ConfigError(f"cannot read ignore file {args.ignore_file}: {e}")

    return AppConfig(
        source_dir=Path(args.source),
        replica_dir=Path(args.replica),
        interval_sec=args.interval,
        log_file=Path(args.log_file),
        ignore_patterns=tuple(patterns),
        watch=bool(args.watch),
    )


def _is_subpath(child: Path, parent: Path) -> bool:
    try:
        child.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False


def validate_paths(source: Path, replica: Path, log_file: Path) -> tuple[Path, Path]:
    source = source.expanduser().resolve()
    replica = replica.expanduser().resolve()

    if source == replica:
        raise ConfigError("Source and replica folders must be different.")
    if _is_subpath(replica, source):
        raise ConfigError("Replica folder must NOT be inside source folder (would mirror itself).")
    if _is_subpath(source, replica):
        raise ConfigError("Source folder must NOT be inside replica folder (would be pruned).")
    if _is_subpath(log_file.expanduser(), replica):
        raise ConfigError("Log file must NOT be inside replica folder (would be pruned).")
    if _is_subpath(log_file.expanduser(), source):
        raise ConfigError("Log file must NOT be inside source folder (every log line would change the source).")
    return source, replica


STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_signal_handlers(loop: SyncLoop) -> dict:
    """
    Route SIGINT / SIGTERM to `loop.request_stop()`. Returns the previous handlers.

    The handler runs on the main thread, which may be inside the loop's
    event wait, so the actual stop request is made from a helper thread.
    """
    def _handle(signum, frame):
        threading.Thread(target=loop.request_stop, name="folder-sync-stop", daemon=True).start()

    previous = {}
    for sig in STOP_SIGNALS:
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, _handle)
    return previous


def restore_signal_handlers(previous: dict) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler if handler is not None else signal.SIG_DFL)


# -------------------------
# Main
# -------------------------

def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        cfg = build_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        log = SyncLog(cfg.log_file).open()
    except OSError as e:
        print(f"Error: cannot open log file {cfg.log_file}: {e}", file=sys.stderr)
        return 1

    with log:
        problem = source_error(cfg.source_dir)
        if problem:
            log.log(problem, level=logging.ERROR)
            return 1

        try:
            source, replica = validate_paths(cfg.source_dir, cfg.replica_dir, cfg.log_file)
        except ConfigError as e:
            log.log(f"Error: {e}", level=logging.ERROR)
            return 1

        log.log("Starting folder synchronization.")
        log.log(f"Source path: {source}")
        log.log(f"Replica path: {replica}")
        log.log(f"Synchronization interval: {cfg.interval_sec} seconds")
        if cfg.ignore_patterns:
            log.log(f"Ignore patterns: {', '.join(cfg.ignore_patterns)}")

        ignore = IgnoreMatcher(list(cfg.ignore_patterns)) if cfg.ignore_patterns else None
        loop = SyncLoop(source, replica, cfg.interval_sec, log, ignore=ignore)
        previous_handlers = install_signal_handlers(loop)

        observer = None
        try:
            if cfg.watch:
                observer = start_watcher(loop, source, ignore)
                log.log("Watching source for changes.")
            return loop.run()
        finally:
            if observer is not None:
                observer.stop()
                observer.join(timeout=10)
            restore_signal_handlers(previous_handlers or {})


if __name__ == "__main__":
    raise SystemExit(main())
