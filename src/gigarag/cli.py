import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_CONFIG, config_path, config_summary, load_config, save_config, validate_config
from .indexing import BatchUpsertError, IndexProgress, build_index, project_stats
from .search import RetrievalEngine, format_match
from .storage import CollectionError, make_vector_store
from .utils import repo_root

logger = logging.getLogger("gigarag")


def _root(args) -> Path:
    if args.root:
        return Path(args.root).resolve()
    return repo_root(Path.cwd())


def _load(args):
    root = _root(args)
    cfg = load_config(root)
    errors = validate_config(cfg)
    if errors:
        raise SystemExit("Invalid configuration:\n  " + "\n  ".join(errors))
    return root, cfg


def _print_progress(event: IndexProgress) -> None:
    if event.event == "document":
        status = "ok" if event.ok else "FAILED"
        print(f"Processing {event.processed}/{event.total}: {event.file_path} [{status}]")
    elif event.event == "batch":
        print(f"Batch {event.batch}: {event.message}")


def cmd_index(args):
    root, cfg = _load(args)
    if not cfg.get("enabled", True):
        print("RAG is disabled in configuration")
        return 1
    if args.dry_run:
        stats = project_stats(root, cfg)
        print(f"Project: {root}")
        print(f"- Total files: {stats.total_files}")
        print(f"- Included files: {stats.included_files}")
        print(f"- Excluded files: {stats.excluded_files}")
        print(f"- Chunks: {stats.chunks}")
        return 0
    try:
        stats = build_index(root, cfg, on_progress=None if args.quiet else _print_progress)
    except (CollectionError, BatchUpsertError) as e:
        print(f"Indexing aborted: {e}", file=sys.stderr)
        return 1
    print(
        f"Indexed {stats.indexed} chunks from {stats.chunked_files} files into "
        f"'{cfg['vector_store']['qdrant']['collection']}' "
        f"({stats.failed} failed, {stats.skipped_files} skipped, {stats.duration_s}s)"
    )
    return 0


def cmd_query(args):
    _, cfg = _load(args)
    engine = RetrievalEngine.from_config(cfg)
    result = engine.query(args.query, limit=args.limit, threshold=args.threshold, generate=not args.no_answer)

    if result.error:
        print(f"Error querying: {result.error}", file=sys.stderr)
        return 1
    if result.no_results:
        print(f"No results found above threshold {result.threshold}")
        return 0

    print(f"Found {len(result.matches)} results")
    if result.answer:
        print("\nAI Response:")
        print(result.answer)
    elif result.generation_error:
        print(f"\nAI generation failed: {result.generation_error}", file=sys.stderr)

    print("\nTop Matching Files:")
    for i, hit in enumerate(result.matches, 1):
        print()
        print(format_match(i, hit))
    return 0


def cmd_info(args):
    _, cfg = _load(args)
    store = make_vector_store(cfg)
    try:
        info = store.get_collection_info()
    except CollectionError as e:
        print(f"Error getting collection info: {e}", file=sys.stderr)
        return 1
    if info is None:
        print(f"Collection '{store.collection_name}' does not exist")
        return 1
    print(f"Collection '{info.name}' info:")
    print(f"- Points count: {info.points_count}")
    print(f"- Vector size: {info.dimension}")
    print(f"- Distance: {info.distance}")
    return 0


def cmd_clear(args):
    _, cfg = _load(args)
    store = make_vector_store(cfg)
    try:
        deleted = store.clear_collection()
    except CollectionError as e:
        print(f"Failed to clear index: {e}", file=sys.stderr)
        return 1
    if deleted:
        print(f"Cleared collection '{store.collection_name}'")
    else:
        print(f"Collection '{store.collection_name}' does not exist, nothing to clear")
    return 0


def cmd_config(args):
    root = _root(args)
    if args.init:
        if config_path(root).exists() and not args.force:
            print(f"{config_path(root)} already exists (use --force to overwrite)")
            return 1
        path = save_config(DEFAULT_CONFIG, root)
        print(f"Wrote {path}")
        return 0
    cfg = load_config(root)
    print(config_summary(cfg, root))
    errors = validate_config(cfg)
    for err in errors:
        print(f"  ! {err}")
    return 1 if errors else 0


def main(argv=None):
    p = argparse.ArgumentParser(prog="gigarag", description="Index a codebase into Qdrant and query it")
    p.add_argument("--root", default=None, help="Project root holding .giga/rag-config.json (default: enclosing git repo)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    pi = sub.add_parser("index", help="Rebuild the collection from the project root")
    pi.add_argument("-q", "--quiet", action="store_true", help="No per-document progress")
    pi.add_argument("--dry-run", action="store_true", help="Report file and chunk counts without indexing")
    pi.set_defaults(func=cmd_index)

    pq = sub.add_parser("query", help="Query the collection")
    pq.add_argument("query", help="Natural-language question")
    pq.add_argument("--limit", type=int, default=None)
    pq.add_argument("--threshold", type=float, default=None)
    pq.add_argument("--no-answer", action="store_true", help="List matches without generating an answer")
    pq.set_defaults(func=cmd_query)

    pinfo = sub.add_parser("info", help="Show collection info")
    pinfo.set_defaults(func=cmd_info)

    pclear = sub.add_parser("clear", help="Delete the collection")
    pclear.set_defaults(func=cmd_clear)

    pc = sub.add_parser("config", help="Show or initialize configuration")
    pc.add_argument("--init", action="store_true", help="Write default .giga/rag-config.json")
    pc.add_argument("--force", action="store_true")
    pc.set_defaults(func=cmd_config)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ValueError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
