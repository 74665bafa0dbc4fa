import argparse
import json
import sys
import threading
import time

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from processors.content_integrator import IntegrationOptions
from tools.web.factory import create_rag_from_env
from utils.errors import AppError
from utils.logger import get_logger

logger = get_logger(__name__)


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console until stop_event is set.
    """
    while not stop_event.is_set():
        for char in "|/-\\":
            if stop_event.is_set():
                break
            sys.stderr.write(f"\r\033[93mResearching {char}\033[0m")
            sys.stderr.flush()
            time.sleep(0.1)
    sys.stderr.write("\r" + " " * 20 + "\r")
    sys.stderr.flush()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Answer a question with multi-stage web retrieval and merge the findings."
    )
    parser.add_argument("query", help="Natural-language question or search query")
    parser.add_argument("--stages", type=int, default=None, help="Maximum retrieval stages")
    parser.add_argument("--results", type=int, default=None, help="Search results per stage")
    parser.add_argument("--min-score", type=float, default=None, help="Relevance threshold (0-1)")
    parser.add_argument(
        "--format", choices=["markdown", "text", "html"], default="markdown", help="Output format"
    )
    parser.add_argument("--max-length", type=int, default=8000, help="Maximum merged content length")
    parser.add_argument("--no-expansion", action="store_true", help="Disable query expansion")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    config = Config()
    if not config.validate():
        print("Configuration is incomplete: " + ", ".join(config.missing_keys()), file=sys.stderr)
        return 2

    try:
        options = config.rag_options(
            max_stages=args.stages,
            max_results_per_stage=args.results,
            min_score_threshold=args.min_score,
            use_query_expansion=not args.no_expansion,
            integration=IntegrationOptions(
                format_output=args.format, max_content_length=args.max_length
            ),
        )
    except ValueError as e:
        print(f"Invalid option: {e}", file=sys.stderr)
        return 2

    rag = create_rag_from_env(config)
    logger.info(
        f"Researching with {config.get_model_info()}",
        extra={"extra_fields": {"query": args.query, "stages": options.max_stages}},
    )

    stop_event = threading.Event()
    spinner = threading.Thread(target=show_loading_animation, args=(stop_event,), daemon=True)
    spinner.start()
    try:
        result = rag.process_sync(args.query, options)
    except AppError as e:
        logger.error(f"Research failed: {e}", extra={"extra_fields": e.to_dict()})
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        stop_event.set()
        spinner.join()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"# {result.title}\n")
    print(f"{result.summary}\n")
    print(result.merged_content)
    if result.sources:
        print("\nSources:")
        for idx, source in enumerate(result.sources, start=1):
            print(f"[{idx}] {source.title} - {source.url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
