"""
Command line entry point.

    voyage-gateway embed -t "first text" -t "second text"
    voyage-gateway rerank -q "query" -d "doc one" -d "doc two" [-k 1]

Results are printed to stdout as JSON; logs go to stderr.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from voyage_gateway import __version__
from voyage_gateway.config import settings, configure_logging, get_logger
from voyage_gateway.errors import VoyageError
from voyage_gateway.gateway import Gateway
from voyage_gateway.schemas.embeddings import InputType

logger = get_logger(__name__)


async def run_embed(gateway: Gateway, texts: List[str], input_type: Optional[str] = None) -> List[dict]:
    if len(texts) == 1:
        kind = InputType(input_type) if input_type else None
        vectors = [await gateway.embed(texts[0], input_type=kind)]
    else:
        vectors = await gateway.embed_batch(texts)
    return [{"text": text, "dimensions": len(vector), "preview": vector[:5]} for text, vector in zip(texts, vectors)]


async def run_rerank(gateway: Gateway, query: str, documents: List[str], top_k: Optional[int] = None) -> List[dict]:
    results = []
    async with gateway.rerank_stream(query, documents) as stream:
        async for item in stream:
            results.append({"rank": item.rank, "similarity": item.similarity, "document": item.document})
            if top_k is not None and len(results) >= top_k:
                break
    return results


async def run_command(args: argparse.Namespace) -> List[dict]:
    async with Gateway(api_key=args.api_key) as gateway:
        if args.command == "embed":
            return await run_embed(gateway, args.texts, args.input_type)
        return await run_rerank(gateway, args.query, args.documents, args.top_k)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voyage-gateway",
        description="Rate-limited access to the Voyage AI embedding and rerank endpoints",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--api-key",
        default=None,
        help="Voyage AI API key (defaults to VOYAGE_API_KEY)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    embed = subparsers.add_parser("embed", help="Embed one or more texts")
    embed.add_argument(
        "-t", "--text",
        dest="texts",
        action="append",
        required=True,
        help="Text to embed (repeatable)",
    )
    embed.add_argument(
        "--input-type",
        choices=[item.value for item in InputType],
        default=None,
        help="Input type hint (single text only)",
    )

    rerank = subparsers.add_parser("rerank", help="Rank documents by similarity to a query")
    rerank.add_argument("-q", "--query", required=True, help="The search query")
    rerank.add_argument(
        "-d", "--document",
        dest="documents",
        action="append",
        required=True,
        help="Document to rank (repeatable)",
    )
    rerank.add_argument(
        "-k", "--top-k",
        type=int,
        default=None,
        help="Stop after this many results",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        log_dir=settings.log_dir,
    )

    try:
        results = asyncio.run(run_command(args))
    except VoyageError as e:
        logger.error("command_failed", command=args.command, error_type=type(e).__name__, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(results, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
