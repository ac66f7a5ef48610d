#!/usr/bin/env python3
"""
audit_catalog.py

Purpose:
- Stream a fund catalog (JSON array) the same way the search service does
- Report parsed / malformed / dropped / duplicate record counts
- Show how the catalog is distributed across categories
- Optionally write a cleaned copy (valid, de-duplicated records only),
  backing up the destination first if it exists

Safe to run multiple times.
"""

import argparse
import json
import time
from collections import Counter
from pathlib import Path

from fundsearch.services.documents import DocumentBuilder
from fundsearch.utils.loader import DEFAULT_CHUNK_SIZE, LoadStats, stream_catalog


def audit(catalog_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE, keep_records: bool = False):
    """
    Returns:
        tuple:
          - LoadStats for the pass
          - Counter of category -> fund count
          - list of valid raw records (empty unless keep_records)
    """
    stats = LoadStats()
    builder = DocumentBuilder()
    categories = Counter()
    seen = set()
    kept = []

    for raw in stream_catalog(str(catalog_path), chunk_size, stats):
        document = builder.build(raw)
        if document is None:
            stats.dropped += 1
            continue
        if document.id in seen:
            stats.duplicates += 1
            continue
        seen.add(document.id)
        stats.indexed += 1
        categories[f"{document.category} / {document.sub_category}"] += 1
        if keep_records:
            kept.append(raw)

    return stats, categories, kept


def write_clean(records: list, output_path: Path):
    if output_path.exists():
        timestamp = time.strftime('%Y%m%dT%H%M%S')
        backup_path = output_path.with_suffix(f'.json.bak.{timestamp}')
        backup_path.write_bytes(output_path.read_bytes())
        print(f"Backup created: {backup_path}")

    with output_path.open('w', encoding='utf-8') as f:
        json.dump(records, f, indent=2, ensure_ascii=False)
    print(f"Clean catalog written: {output_path} ({len(records)} records)")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Audit a mutual-fund catalog JSON file.")
    parser.add_argument("catalog", type=Path, help="Path to the catalog (JSON array of funds)")
    parser.add_argument("--write-clean", type=Path, metavar="OUT",
                        help="Write valid, de-duplicated records to OUT")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE)
    args = parser.parse_args(argv)

    if not args.catalog.exists():
        raise SystemExit(f"Error: {args.catalog} not found.")

    stats, categories, kept = audit(args.catalog, args.chunk_size, keep_records=bool(args.write_clean))

    print(f"Parsed records:     {stats.parsed}")
    print(f"Malformed records:  {stats.malformed}")
    print(f"Dropped (invalid):  {stats.dropped}")
    print(f"Duplicate ids:      {stats.duplicates}")
    print(f"Indexable funds:    {stats.indexed}")
    print()
    print("Category distribution:")
    for name, count in categories.most_common():
        print(f"  {name:<40} {count}")

    if args.write_clean:
        write_clean(kept, args.write_clean)

    print("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
