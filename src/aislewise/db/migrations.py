"""Versioned schema migrations.

Each migration is a version number and an ordered list of steps. A step is
either a raw SQL string or a callable that receives the live connection.
Pending migrations are applied together in one transaction and the
resulting version is recorded in ``PRAGMA user_version``.
"""
from dataclasses import dataclass, field
from typing import Callable, Sequence, Tuple, Union

from sqlalchemy import insert
from sqlalchemy.engine import Connection, Engine

from aislewise.errors import SchemaError
from aislewise.models import Base, QuantityUnit
from aislewise.utils.logger import get_logger

logger = get_logger(__name__)

MigrationStep = Union[str, Callable[[Connection], None]]


@dataclass(frozen=True)
class Migration:
    """A single schema version."""
    version: int
    statements: Tuple[MigrationStep, ...]
    description: str = field(default="")


# (id, name, abbreviation, sort_order, category)
QUANTITY_UNITS: Tuple[Tuple[str, str, str, int, str], ...] = (
    ("gram", "Gram", "g", 10, "weight"),
    ("kilogram", "Kilogram", "kg", 11, "weight"),
    ("milligram", "Milligram", "mg", 9, "weight"),
    ("ounce", "Ounce", "oz", 12, "weight"),
    ("pound", "Pound", "lb", 13, "weight"),
    ("milliliter", "Milliliter", "ml", 20, "volume"),
    ("liter", "Liter", "l", 21, "volume"),
    ("fluid-ounce", "Fluid Ounce", "fl oz", 22, "volume"),
    ("cup", "Cup", "cup", 23, "volume"),
    ("tablespoon", "Tablespoon", "tbsp", 24, "volume"),
    ("teaspoon", "Teaspoon", "tsp", 25, "volume"),
    ("count", "Count", "ct", 30, "count"),
    ("dozen", "Dozen", "doz", 31, "count"),
    ("package", "Package", "pkg", 40, "package"),
    ("can", "Can", "can", 41, "package"),
    ("box", "Box", "box", 42, "package"),
    ("bag", "Bag", "bag", 43, "package"),
    ("bottle", "Bottle", "btl", 44, "package"),
    ("jar", "Jar", "jar", 45, "package"),
    ("bunch", "Bunch", "bunch", 50, "other"),
)


def _create_core_tables(conn: Connection) -> None:
    """Create every mapped table and index that does not exist yet."""
    Base.metadata.create_all(conn, checkfirst=True)


def seed_quantity_units(conn: Connection) -> None:
    """Insert the built-in quantity units that are missing."""
    conn.execute(
        insert(QuantityUnit).prefix_with("OR IGNORE"),
        [
            {'id': id_, 'name': name, 'abbreviation': abbr, 'sort_order': order, 'category': category}
            for id_, name, abbr, order, category in QUANTITY_UNITS
        ]
    )


def _add_quantity_units(conn: Connection) -> None:
    """Create the unit table, link list items to it and seed it."""
    QuantityUnit.__table__.create(conn, checkfirst=True)
    columns = {row[1] for row in conn.exec_driver_sql("PRAGMA table_info(shopping_list_item)")}
    if "unit_id" not in columns:
        conn.exec_driver_sql(
            "ALTER TABLE shopping_list_item ADD COLUMN unit_id VARCHAR "
            "REFERENCES quantity_unit (id) ON DELETE SET NULL"
        )
    seed_quantity_units(conn)


MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        version=1,
        statements=(_create_core_tables,),
        description="stores, layout, catalog, lists and settings",
    ),
    Migration(
        version=2,
        statements=(
            "CREATE INDEX IF NOT EXISTS ix_shopping_list_item_list_checked "
            "ON shopping_list_item (list_id, is_checked, updated_at)",
        ),
        description="list item lookup by list and checked state",
    ),
    Migration(
        version=3,
        statements=(_add_quantity_units,),
        description="quantity units",
    ),
)


def get_schema_version(conn: Connection) -> int:
    """Read the applied schema version."""
    return int(conn.exec_driver_sql("PRAGMA user_version").scalar() or 0)


def set_schema_version(conn: Connection, version: int) -> None:
    """Record the applied schema version."""
    conn.exec_driver_sql(f"PRAGMA user_version = {int(version)}")


def run_migrations(
    engine: Engine,
    migrations: Sequence[Migration] = MIGRATIONS
) -> int:
    """
    Apply all pending migrations as a single atomic unit.

    Args:
        engine: Engine to migrate
        migrations: Known migrations, in any order

    Returns:
        The schema version after the run

    Raises:
        SchemaError: If the migration list is invalid or any step fails.
            Nothing is applied in that case.
    """
    versions = [m.version for m in migrations]
    if len(set(versions)) != len(versions):
        raise SchemaError(
            "Duplicate migration versions",
            metadata={'versions': versions}
        )

    try:
        with engine.begin() as conn:
            current = get_schema_version(conn)
            pending = sorted(
                (m for m in migrations if m.version > current),
                key=lambda m: m.version
            )
            if not pending:
                logger.debug("Schema up to date", version=current)
                return current

            for migration in pending:
                logger.info(
                    "Applying migration",
                    version=migration.version,
                    description=migration.description
                )
                for step in migration.statements:
                    if callable(step):
                        step(conn)
                    else:
                        conn.exec_driver_sql(step)
                set_schema_version(conn, migration.version)

            logger.info(
                "Migrations applied",
                from_version=current,
                to_version=pending[-1].version
            )
            return pending[-1].version

    except Exception as e:
        logger.exception("Migration failed, schema left unchanged")
        raise SchemaError(
            f"Migration failed: {e}",
            suggestions=["Check the failing statement", "Restore from a backup"]
        ) from e
