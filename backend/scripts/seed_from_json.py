#!/usr/bin/env python
"""Import catalog rows from a JSON file.

Rows carrying item_name/category_name go through the full catalog import
(item, details, warehouse price); price-only rows are reconciled against the
warehouse given with --warehouse-id.

Usage:
    python backend/scripts/seed_from_json.py items.json --warehouse-id 1 --locale pl
    python backend/scripts/seed_from_json.py items.json --warehouse-id 1 --dry-run  # parse + validate only
"""
from __future__ import annotations
import os, sys, argparse, textwrap

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from storefront import create_app, get_db  # type: ignore
from storefront.config.locales import DEFAULT_LOCALE, SUPPORTED_LOCALES
from storefront.models.warehouse import Warehouse
from storefront.services.bulk_upload import import_catalog_rows, reconcile_prices
from storefront.services.bulk_validation import validate_bulk_items
from storefront.services.errors import StorefrontError
from storefront.services.parsers import parse_json


def is_catalog_row(row) -> bool:
    return bool(row.get('item_name') and row.get('category_name'))


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Import items from a JSON file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  import: seed_from_json.py items.json --warehouse-id 1\n  dry run: seed_from_json.py items.json --warehouse-id 1 --dry-run\n""")
    )
    p.add_argument('file', help='JSON file holding an array of item rows')
    p.add_argument('--warehouse-id', type=int, required=True, help='Warehouse for rows without warehouse_name')
    p.add_argument('--locale', default=DEFAULT_LOCALE, choices=SUPPORTED_LOCALES, help='Locale of item names/descriptions')
    p.add_argument('--dry-run', action='store_true', help='Parse and validate only (no DB writes)')
    return p.parse_args(argv)


def main(argv=None, app=None):
    args = parse_args(argv)
    with open(args.file, 'rb') as f:
        try:
            rows = parse_json(f.read())
        except StorefrontError as e:
            print(f"[ERROR] {e.message}")
            sys.exit(2)

    app = app or create_app()
    with app.app_context():
        session = get_db()
        try:
            warehouse = session.get(Warehouse, args.warehouse_id)
            if warehouse is None:
                print(f"[ERROR] Warehouse {args.warehouse_id} not found")
                sys.exit(2)
            catalog_rows = [r for r in rows if is_catalog_row(r)]
            price_rows = [r for r in rows if not is_catalog_row(r)]
            for r in catalog_rows:
                if not r.get('warehouse_name'):
                    r['warehouse_name'] = warehouse.name or warehouse.displayed_name

            if args.dry_run:
                result = validate_bulk_items(catalog_rows)
                print(f"[DRY-RUN] catalog rows: {len(result.valid_items)} valid, {len(result.invalid_items)} invalid; price rows: {len(price_rows)}")
                for err in result.errors[:10]:
                    print(' -', err)
                return

            if catalog_rows:
                summary = import_catalog_rows(catalog_rows, args.locale, session=session)
                print(f"[DONE] catalog: processed {summary['processed']}, created {summary['created']}, "
                      f"updated {summary['updated']}, invalid {summary['invalid']}")
                for err in summary['errors'][:10]:
                    print(' -', err)
            if price_rows:
                outcome = reconcile_prices(price_rows, args.warehouse_id, session=session)
                print(f"[DONE] {outcome['message']}")
                for err in outcome['details']:
                    print(' -', err)
        except StorefrontError as e:
            session.rollback()
            print(f"[ERROR] {e.message}")
            sys.exit(2)
        finally:
            session.close()


if __name__ == '__main__':
    main()
