import argparse
import logging
import sys

from dotenv import load_dotenv

from ragsync import rag


def _echo(message: str) -> None:
    sys.stdout.write(f"{message}\n")


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Semantic (kNN) lookup over synced connectors")
    parser.add_argument("--q", type=str, required=True, help="Query text")
    parser.add_argument("--k", type=int, default=None, help="Number of chunks returned")
    parser.add_argument(
        "--min-similarity",
        type=float,
        default=None,
        help="Drop matches whose cosine similarity is below this value",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(message)s")

    matches = rag.retrieve_context(args.q, args.k, min_similarity=args.min_similarity)
    if not matches:
        _echo(f"No context found for: {args.q!r}")
        return

    _echo(f"Top {len(matches)} chunks for: {args.q!r}\n")
    for i, match in enumerate(matches, 1):
        source = match.metadata.get("source_url") or match.metadata.get("connector_name")
        _echo(f"[{i}] connector {match.connector_id}  {source}  (sim={match.similarity:.4f})")
        preview = match.content.strip().replace("\n", " ")
        preview = (preview[:600] + "…") if len(preview) > 600 else preview
        _echo(preview)
        _echo("-" * 80)


if __name__ == "__main__":
    main()
