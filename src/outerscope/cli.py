"""
CLI entry point for outerscope.

Usage:
    outerscope analyze <file>          Analyze a JavaScript file and show index summary
    outerscope analyze <file> --json   Print the full response message
    outerscope worker                  Run the JSON-lines analysis worker on stdin/stdout
    outerscope watch <path>            Re-analyze .js files as they are edited
    outerscope config [--init]         Show (or write) the configuration
"""

import argparse
import json
import logging
import sys
import threading
import time
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from outerscope import __version__
from outerscope.config import AnalyzerConfig, get_config, write_default_config
from outerscope.hints import split_path
from outerscope.parser.channel import AnalysisChannel, AnalysisTask
from outerscope.parser.pipeline import Analyzer
from outerscope.parser.response import AnalysisResponse
from outerscope.parser.scope_serde import count_scopes, scope_to_dict

logger = logging.getLogger(__name__)


def _read_source(path: Path) -> str:
    """Read a source file with encoding fallback."""
    for encoding in ('utf-8-sig', 'utf-8'):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_text(encoding='latin-1')


def _document_parts(path: Path) -> Tuple[str, str]:
    parts = split_path(path.resolve().as_posix())
    return parts["dir"], parts["file"]


def _summary(response: AnalysisResponse) -> str:
    source = f"{response.dir}{response.file}"
    if not response.success:
        return f"{source}: no index (could not parse)"
    return (
        f"{source}: {len(response.identifiers)} identifiers, "
        f"{len(response.properties)} properties, {len(response.literals)} literals, "
        f"{len(response.globals)} globals, {len(response.associations)} objects with properties"
    )


def cmd_analyze(args, config: AnalyzerConfig):
    """Analyze a file and show an index summary."""
    path = Path(args.file)
    try:
        text = _read_source(path)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    directory, filename = _document_parts(path)
    analyzer = Analyzer(max_retries=config.max_retries)
    response = analyzer.analyze(directory, filename, text, allow_repair=not args.no_repair)

    if args.json:
        print(json.dumps(response.to_message(), indent=2))
        return 0 if response.success else 1

    print(_summary(response))
    if args.verbose and response.success:
        print(f"  scopes: {count_scopes(scope_to_dict(response.scope))}")
        for label, tokens in (("identifiers", response.identifiers),
                              ("properties", response.properties),
                              ("literals", response.literals),
                              ("globals", response.globals)):
            if not tokens:
                continue
            print(f"  {label}:")
            for token in sorted(tokens, key=lambda t: str(t.value))[:20]:
                print(f"    {token.value!r} at {list(token.positions)}")
            if len(tokens) > 20:
                print(f"    ... and {len(tokens) - 20} more")
        for obj, props in sorted(response.associations.items()):
            ranked = sorted(props.items(), key=lambda kv: (-kv[1], kv[0]))
            print(f"  {obj}: " + ", ".join(f"{p} ({n})" for p, n in ranked))

    return 0 if response.success else 1


def cmd_worker(args, config: AnalyzerConfig):
    """Run the analysis worker loop."""
    from outerscope.parser.analysis_worker import main as worker_main
    return worker_main(args.log_level or config.log_level)


def cmd_config(args, config: AnalyzerConfig):
    """Show the active configuration, or write a default file."""
    if args.init:
        path = write_default_config(Path(args.init) if args.init is not True else None)
        print(f"Wrote default configuration to {path}")
        return 0
    print(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False), end="")
    return 0


# =============================================================================
# WATCH MODE
# =============================================================================

class _RecentQueue:
    """Thread-safe queue of modified files, most recent first."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, float] = {}  # path -> last_ts

    def push(self, path: Path, ts: float) -> None:
        p = str(path)
        with self._lock:
            prev = self._items.get(p)
            if prev is None or ts > prev:
                self._items[p] = ts

    def pop_most_recent(self) -> Optional[Tuple[Path, float]]:
        with self._lock:
            if not self._items:
                return None
            p, ts = max(self._items.items(), key=lambda kv: kv[1])
            del self._items[p]
            return Path(p), ts

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class _SourceChangeHandler(FileSystemEventHandler):
    """Queues edited source files."""

    def __init__(self, queue: _RecentQueue, extensions, skip_dirs) -> None:
        super().__init__()
        self.queue = queue
        self.extensions = set(extensions)
        self.skip_dirs = set(skip_dirs)

    def wants(self, path: Path) -> bool:
        if path.suffix not in self.extensions:
            return False
        return not any(part in self.skip_dirs for part in path.parts)

    def on_modified(self, event) -> None:
        if event.is_directory:
            return
        path = Path(event.src_path)
        if self.wants(path):
            self.queue.push(path, time.time())

    def on_created(self, event) -> None:
        self.on_modified(event)


def _report_finished(in_flight: Dict[str, AnalysisTask]) -> None:
    for key, task in list(in_flight.items()):
        if not task.future.done():
            continue
        del in_flight[key]
        if task.future.cancelled() or task.future.exception() is not None:
            continue
        print(f"[watch] {_summary(task.result())}")


def run_watch(root: Path, config: AnalyzerConfig, interval: float, debounce: float) -> int:
    """Watch a directory and re-analyze the most recently edited file."""
    queue = _RecentQueue()
    handler = _SourceChangeHandler(queue, config.watch_extensions, config.watch_skip_dirs)
    observer = Observer()
    observer.schedule(handler, str(root), recursive=True)
    observer.start()

    print(f"[watch] watching {root} (interval={interval}s debounce={debounce}s)")

    in_flight: Dict[str, AnalysisTask] = {}
    last_submitted: Dict[str, float] = {}

    with AnalysisChannel(Analyzer(max_retries=config.max_retries)) as channel:
        try:
            while True:
                _report_finished(in_flight)

                item = queue.pop_most_recent()
                if item is None:
                    time.sleep(interval)
                    continue

                path, ts = item
                key = str(path)
                now = time.time()
                if now - last_submitted.get(key, 0.0) < debounce:
                    # Still being typed into; look again later
                    queue.push(path, ts)
                    time.sleep(interval)
                    continue
                last_submitted[key] = now

                try:
                    text = _read_source(path)
                except OSError as e:
                    logger.warning(f"Could not read {path}: {e}")
                    continue

                # A newer edit supersedes any analysis still repairing the old text
                previous = in_flight.pop(key, None)
                if previous is not None:
                    previous.cancel()

                directory, filename = _document_parts(path)
                in_flight[key] = channel.submit(directory, filename, text, force=True)

        except KeyboardInterrupt:
            print("\n[watch] stopping...")
        finally:
            observer.stop()
            observer.join()

    return 0


def cmd_watch(args, config: AnalyzerConfig):
    """Re-analyze edited files under a directory."""
    root = Path(args.path)
    if not root.is_dir():
        print(f"Error: not a directory: {root}", file=sys.stderr)
        return 1
    interval = args.interval if args.interval is not None else config.watch_interval
    debounce = args.debounce if args.debounce is not None else config.watch_debounce
    return run_watch(root, config, interval, debounce)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Hint indexes for JavaScript documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    outerscope analyze src/main.js -v
    outerscope analyze src/broken.js --no-repair --json
    outerscope watch src/
    outerscope config --init
"""
    )
    parser.add_argument('--version', action='version', version=f'outerscope {__version__}')
    parser.add_argument('--config', help='Path to a YAML configuration file')
    parser.add_argument('--log-level', help='Logging level (default from config)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # analyze
    analyze_p = subparsers.add_parser('analyze', help='Analyze a JavaScript file')
    analyze_p.add_argument('file', help='File to analyze')
    analyze_p.add_argument('--no-repair', action='store_true',
                           help='Fail on the first fatal syntax error instead of blanking lines')
    analyze_p.add_argument('--json', action='store_true', help='Print the full response message')
    analyze_p.add_argument('-v', '--verbose', action='store_true')
    analyze_p.set_defaults(func=cmd_analyze)

    # worker
    worker_p = subparsers.add_parser('worker', help='Run the JSON-lines analysis worker')
    worker_p.set_defaults(func=cmd_worker)

    # watch
    watch_p = subparsers.add_parser('watch', help='Re-analyze files as they are edited')
    watch_p.add_argument('path', help='Directory to watch')
    watch_p.add_argument('--interval', type=float, help='Seconds between queue polls')
    watch_p.add_argument('--debounce', type=float, help='Minimum seconds between analyses of one file')
    watch_p.set_defaults(func=cmd_watch)

    # config
    config_p = subparsers.add_parser('config', help='Show or initialize configuration')
    config_p.add_argument('--init', nargs='?', const=True, default=None, metavar='PATH',
                          help='Write a default config file (default ~/.outerscope/config.yaml)')
    config_p.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    config = get_config(Path(args.config) if args.config else None)

    # The worker configures its own logging
    if args.command != 'worker':
        logging.basicConfig(
            level=(args.log_level or config.log_level).upper(),
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
