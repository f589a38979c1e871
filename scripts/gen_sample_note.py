#!/usr/bin/env python3
"""Sample note generation script for performance testing.

Generates a synthetic markdown note with front matter and a populated ExpLog
table, suitable for `explog inspect` / `explog export` smoke runs:
- front matter with AnimalID
- a short prose section
- the ExpLog table (Date | Time | StackID | ExpID | SiteID | Paradigm | Comment)

Every site gets one "new site" row (StackID == ExpID == SiteID) followed by
ordinary rows, so the generated batch passes validation against an empty
database.
"""
from __future__ import annotations

import argparse
import random
import sys
from datetime import date, timedelta
from pathlib import Path

from explog.markdown.table import HEADERS_V2

PARADIGMS = ["passive", "go-nogo", "oddball", "rest", "grating"]


def generate_rows(rows: int, sites: int = 5, seed: int = 42) -> list[list[str]]:
    """Generate table cells row by row.

    Ids are laid out so that ids never collide between kinds: site s owns the
    triple row s/s/s and the following stack/experiment ids are allocated
    above the site id range.
    """
    rng = random.Random(seed)
    sites = max(1, min(sites, rows))
    out: list[list[str]] = []
    day = date(2024, 1, 1)
    next_id = sites + 1
    for i in range(rows):
        site_id = i % sites + 1
        if i < sites:
            stack_id = exp_id = site_id  # 新規サイト行
        else:
            stack_id = exp_id = next_id
            next_id += 1
        hour = 8 + rng.randint(0, 10)
        minute = rng.randint(0, 59)
        out.append([
            (day + timedelta(days=i // 20)).isoformat(),
            f"{hour:02d}:{minute:02d}",
            str(stack_id),
            str(exp_id),
            str(site_id),
            rng.choice(PARADIGMS),
            f"session {i + 1}",
        ])
    return out


def generate_note_text(rows: int, animal_id: str = "M001", sites: int = 5, seed: int = 42) -> str:
    """Return the full note text (front matter + prose + table)."""
    lines = [
        "---",
        f"AnimalID: {animal_id}",
        "---",
        "",
        f"# Experiment log for {animal_id}",
        "",
        "Generated for performance testing.",
        "",
        "| " + " | ".join(HEADERS_V2) + " |",
        "| " + " | ".join("---" for _ in HEADERS_V2) + " |",
    ]
    for cells in generate_rows(rows, sites, seed):
        lines.append("| " + " | ".join(cells) + " |")
    lines.append("")
    return "\n".join(lines)


def main() -> int:
    """Main CLI interface for note generation."""
    parser = argparse.ArgumentParser(
        description="Generate a synthetic ExpLog note for performance testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate default 5k rows for animal M001
  %(prog)s sample.md

  # Custom size and animal
  %(prog)s big.md --rows 50000 --sites 20 --animal M042
        """
    )
    parser.add_argument("output", type=Path, help="Output markdown file path")
    parser.add_argument("--rows", type=int, default=5_000, help="Number of table rows (default: 5,000)")
    parser.add_argument("--sites", type=int, default=5, help="Number of distinct sites (default: 5)")
    parser.add_argument("--animal", default="M001", help="AnimalID written to the front matter (default: M001)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducible data (default: 42)")

    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if args.sites <= 0:
        print("Error: --sites must be positive", file=sys.stderr)
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(generate_note_text(args.rows, args.animal, args.sites, args.seed), encoding="utf-8")
    print(f"Created note: {args.output}")
    print(f"  AnimalID: {args.animal}")
    print(f"  Rows: {args.rows:,} ({min(args.sites, args.rows)} new sites)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
