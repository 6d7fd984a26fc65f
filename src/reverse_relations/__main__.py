"""Command-line inspection of reverse relation fields.

Examples:
    python -m reverse_relations fields <field-uid>
    python -m reverse_relations related <field-uid> 42 --site 1
    python -m reverse_relations map <field-uid> 42 43 44 --site 1
"""

import argparse
import asyncio
import json
import logging
import sys

from reverse_relations import __version__
from reverse_relations.config.settings import Settings, get_settings
from reverse_relations.core.errors import ReverseRelationsError
from reverse_relations.core.field import create_field
from reverse_relations.db.database import Database, create_database_from_settings
from reverse_relations.db.exceptions import DatabaseError
from reverse_relations.db.models import TargetElement
from reverse_relations.db.repositories import FieldRepository

logger = logging.getLogger("reverse_relations")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="reverse-relations",
        description="Inspect reverse relation fields against a host database",
    )
    parser.add_argument(
        "--version", action="version", version=f"reverse-relations {__version__}"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fields = sub.add_parser("fields", help="List fields a reverse field can point at")
    fields.add_argument("field_uid")

    related = sub.add_parser("related", help="Show the sources related to one element")
    related.add_argument("field_uid")
    related.add_argument("element_id", type=int)
    related.add_argument("--site", type=int, default=None)
    related.add_argument(
        "--any-status",
        action="store_true",
        help="Include disabled and trashed sources",
    )

    eager = sub.add_parser("map", help="Print the eager-load map for a batch of elements")
    eager.add_argument("field_uid")
    eager.add_argument("element_ids", type=int, nargs="*")
    eager.add_argument("--site", type=int, default=None)

    return parser.parse_args(argv)


def configure_logging(settings: Settings) -> None:
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_level = getattr(logging, settings.log_level)

    # stdout carries command output
    logging.basicConfig(level=log_level, format=log_format, stream=sys.stderr)

    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)


async def run(args: argparse.Namespace, db: Database) -> object:
    """Execute one subcommand and return its JSON-serializable result."""
    config = await FieldRepository(db).get_field_config(args.field_uid)
    field = create_field(config, db)

    if args.command == "fields":
        return await field.get_fields()

    if args.command == "related":
        element = TargetElement(id=args.element_id, site_id=args.site)
        sources = await field.fetch_related(element, any_status=args.any_status)
        return [source.model_dump(mode="json") for source in sources]

    elements = [TargetElement(id=i, site_id=args.site) for i in args.element_ids]
    eager = await field.get_eager_loading_map(elements)
    return eager.model_dump(mode="json")


async def _main(args: argparse.Namespace) -> int:
    db = create_database_from_settings()
    if db is None:
        logger.error("REVERSE_RELATIONS_DATABASE_URL is not set")
        return 2

    try:
        await db.connect()
        result = await run(args, db)
    except (ReverseRelationsError, DatabaseError) as e:
        logger.error(str(e))
        return 1
    finally:
        await db.close()

    print(json.dumps(result, indent=2))
    return 0


def main() -> None:
    """Main entry point."""
    args = parse_args()
    configure_logging(get_settings())
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
