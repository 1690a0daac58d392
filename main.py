#!/usr/bin/env python3
"""
新闻通讯摘要 - 主程序入口
Newsletter Digest - Main Entry Point

Reads extracted articles from a JSON file, clusters them by topic, curates
each topic and writes a Markdown digest.

Usage:
    # Curated digest (mode from config.yaml)
    python main.py --articles cache/articles.json

    # Summary mode with a custom config and output file
    python main.py --articles articles.json --mode summary --output digest.md

    # Verbose logging
    python main.py --articles articles.json --verbose
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from newsletter_digest.config import load_config_with_defaults
from newsletter_digest.models import Article
from newsletter_digest.pipeline import DigestPipeline
from newsletter_digest.utils.run_cache import RunCache

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(verbose: bool = False) -> None:
    """
    Setup logging system

    Args:
        verbose: Whether to enable verbose logging (DEBUG level)
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Reduce log level for third-party libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('openai').setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Newsletter digest - cluster, curate and summarize a week of newsletters',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes:
  curated   Best-of selection + per-topic curation + final writing pass
  summary   Top stories deep dive + isolated per-topic summaries

Examples:
  python main.py --articles articles.json
  python main.py --articles articles.json --mode summary --output digest.md
""",
    )

    input_group = parser.add_argument_group('Input/Output Options')
    input_group.add_argument(
        '--articles', '-a',
        required=True,
        help='JSON file with a list of extracted articles',
    )
    input_group.add_argument(
        '--output', '-o',
        default=None,
        help='Markdown output file (default: print to stdout)',
    )

    config_group = parser.add_argument_group('Config Options')
    config_group.add_argument(
        '--config', '-c',
        default='config.yaml',
        help='Config file path (default: config.yaml)',
    )
    config_group.add_argument(
        '--env', '-e',
        default=None,
        help='.env file path (default: search upwards from cwd)',
    )
    config_group.add_argument(
        '--mode', '-m',
        choices=['curated', 'summary'],
        default=None,
        help='Override pipeline.mode from the config',
    )
    config_group.add_argument(
        '--clusters', '-k',
        type=int,
        default=None,
        help='Override pipeline.cluster_count from the config',
    )

    general_group = parser.add_argument_group('General Options')
    general_group.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose (DEBUG) logging',
    )

    return parser.parse_args(argv)


def read_articles(path: Path) -> list[Article]:
    """
    Load articles from a JSON list (or a ``{"articles": [...]}`` object).

    Raises:
        ValueError: The file holds neither shape
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('articles')
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of articles in {path}")

    return [Article.from_dict(item) for item in data]


def main(argv: list[str] | None = None) -> int:
    """
    Main function

    Returns:
        Exit code: 0 for success, non-zero for failure
    """
    args = parse_args(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"Config file not found: {args.config}")
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        return 1

    try:
        config = load_config_with_defaults(str(config_path), args.env)
        if args.mode:
            config['pipeline']['mode'] = args.mode
        if args.clusters is not None:
            config['pipeline']['cluster_count'] = args.clusters
        logger.info(f"Loaded config: {config_path}")
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"Error: failed to load config: {e}", file=sys.stderr)
        return 1

    try:
        articles = read_articles(Path(args.articles))
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read articles: {e}")
        print(f"Error: failed to read articles: {e}", file=sys.stderr)
        return 1

    cache = RunCache(config['pipeline']['cache_dir'])
    cache.cleanup_old_runs()

    try:
        pipeline = DigestPipeline.from_config(config, cache=cache)
        result = pipeline.run(articles)
    except Exception as e:
        logger.error(f"Digest run failed: {e}", exc_info=True)
        return 1

    if not result.digest:
        logger.warning("Nothing to write")
        return 0

    if args.output:
        Path(args.output).write_text(result.digest, encoding='utf-8')
        logger.info(f"Digest written to {args.output}")
    else:
        print(result.digest)

    return 0


if __name__ == '__main__':
    sys.exit(main())
