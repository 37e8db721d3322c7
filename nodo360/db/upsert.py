# nodo360/db/upsert.py
from typing import Any, Dict, Sequence

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def upsert_stmt(
    db: AsyncSession,
    model,
    values: Dict[str, Any],
    conflict_cols: Sequence[str],
    update_cols: Sequence[str],
):
    """
    INSERT ... ON CONFLICT (conflict_cols) DO UPDATE SET update_cols.
    PostgreSQL en producción, SQLite en tests: ambos dialectos soportan la misma sintaxis.
    """
    dialect = db.get_bind().dialect.name
    insert = sqlite.insert if dialect == "sqlite" else postgresql.insert

    stmt = insert(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=list(conflict_cols),
        set_={col: stmt.excluded[col] for col in update_cols},
    )
