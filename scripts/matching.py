#!/usr/bin/env python3
"""
Demo script for the semantic matching engine.
Basic terminal output for trying the three matching views on JSON exports.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def read_records(path):
    """Read a JSON export (bare array or paged {"content": [...]})."""
    if path is None or not path.exists():
        return []
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get("content", [])
    return payload


def print_pairs(title, results, left_label, right_label):
    print("\n" + "="*60)
    print(title)
    print("="*60)

    for coverage in results.coverage:
        print(f"  {coverage.source}: {coverage.embedded}/{coverage.total} embedded")

    if not results.results:
        print(f"  [{results.status.value}] {results.message}")
        return

    print(f"\n{'Rank':<5} {left_label:<20} {right_label:<20} {'Affinity'}")
    print("-"*55)
    for i, pair in enumerate(results, 1):
        print(f"{i:<5} {pair.left_id[:19]:<20} {pair.right_id[:19]:<20} {pair.score:.1%}")


async def run(args):
    from recruit_match.core.matching import get_matching_service

    service = get_matching_service()
    candidates = read_records(args.candidates)
    jobs = read_records(args.jobs)
    clients = read_records(args.clients)

    try:
        if candidates and jobs:
            results = await service.rediscover(candidates, jobs, k=args.top)
            print_pairs("REDISCOVERY: candidates x jobs", results, "Candidate", "Job")

        if clients and candidates:
            results = await service.suggest_talent_pool(clients, candidates, k=args.top)
            print_pairs("TALENT POOL: clients x candidates", results, "Client", "Candidate")

        if args.query:
            source = "candidates" if candidates else "demo"
            results = await service.semantic_search(
                args.query, source, candidates or None, k=args.top
            )
            print("\n" + "="*60)
            print(f"SEARCH ({source}): {args.query}")
            print("="*60)
            if not results.results:
                print(f"  [{results.status.value}] {results.message}")
            for i, match in enumerate(results, 1):
                print(f"{i:<5} {match.score:.3f}  {match.text[:60]}")
    finally:
        await service.close()


def main():
    parser = argparse.ArgumentParser(description="Semantic Matching Demo")
    parser.add_argument("--candidates", type=Path, help="Candidates JSON export")
    parser.add_argument("--jobs", type=Path, help="Jobs JSON export")
    parser.add_argument("--clients", type=Path, help="Clients JSON export")
    parser.add_argument("--query", help="Free-text query for semantic search")
    parser.add_argument("--top", type=int, default=10, help="Number of results")

    args = parser.parse_args()

    print("\n" + "="*60)
    print("recruit-match: Semantic Matching Demo")
    print("="*60)

    if not (args.candidates or args.jobs or args.clients or args.query):
        args.query = "machine learning engineer"

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted.")


if __name__ == "__main__":
    main()
