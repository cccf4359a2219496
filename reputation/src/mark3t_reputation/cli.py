from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv

from mark3t_reputation.domain.rating import RatingInput
from mark3t_reputation.runtime.bootstrap import ReputationRuntime, build_runtime, init_observability


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read and submit marketplace ratings on the reputation contract.")
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List ratings, newest first.")
    list_cmd.add_argument("--subject", type=int, help="Only list ratings for this subject id.")

    summary_cmd = commands.add_parser("summary", help="Average scores for one subject.")
    summary_cmd.add_argument("--subject", type=int, required=True, help="Subject id to summarize.")

    score_cmd = commands.add_parser("score", help="Contract-side score for one subject, in stars.")
    score_cmd.add_argument("--subject", type=int, required=True, help="Subject id to look up.")

    submit_cmd = commands.add_parser("submit", help="Sign and submit a rating (needs SIGNER_MNEMONIC or SIGNER_URI).")
    submit_cmd.add_argument("--subject", type=int, required=True, help="Subject id being rated.")
    submit_cmd.add_argument("--article", type=int, required=True, help="Article score, 1-5.")
    submit_cmd.add_argument("--shipping", type=int, required=True, help="Shipping score, 1-5.")
    submit_cmd.add_argument("--communication", type=int, required=True, help="Communication score, 1-5.")
    submit_cmd.add_argument("--comment", default="", help="Optional free-text comment.")
    return parser


async def _run_command(runtime: ReputationRuntime, args: argparse.Namespace) -> dict[str, object]:
    if args.command == "list":
        fetched = await runtime.query.fetch(args.subject)
        if fetched.failed:
            raise RuntimeError(fetched.error)
        return {"ratings": [asdict(rating) for rating in fetched.ratings]}

    if args.command == "summary":
        fetched = await runtime.query.fetch(args.subject)
        if fetched.failed:
            raise RuntimeError(fetched.error)
        return {"subject_id": args.subject, **asdict(fetched.summary)}

    if args.command == "score":
        scored = await runtime.query.fetch_score(args.subject)
        if scored.failed:
            raise RuntimeError(scored.error)
        return {"subject_id": scored.subject_id, "score": scored.score}

    rating = RatingInput(
        subject_id=args.subject,
        comment=args.comment,
        article_score=args.article,
        shipping_score=args.shipping,
        communication_score=args.communication,
    )
    outcome = await runtime.submission.submit(rating, runtime.signer)
    if not outcome.ok or outcome.result is None:
        raise RuntimeError(outcome.message or "rating submission failed")
    record = outcome.result.record
    return {
        "success": outcome.result.success,
        "hash": outcome.result.hash,
        "purchase_id": record.purchase_ref if record is not None else None,
    }


async def _amain(argv: Sequence[str] | None) -> dict[str, object]:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)
    load_dotenv(dotenv_path=Path(".env"), override=False)
    init_observability()
    runtime = build_runtime()
    try:
        return await _run_command(runtime, args)
    finally:
        await runtime.aclose()


def main(argv: Sequence[str] | None = None) -> None:
    try:
        result = asyncio.run(_amain(argv))
    except KeyboardInterrupt:
        raise
    except Exception as exc:
        raise SystemExit(str(exc)) from exc

    print(json.dumps(result))


__all__ = ["main"]
