from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from pantry_chef.errors import StoreError
from pantry_chef.models import recipes_table
from pantry_chef.schemas import RecipeConstraints, RecipeOut

log = logging.getLogger("pantry_chef.recipe_store")

POPULAR_LIMIT = 5


@dataclass(frozen=True)
class NewRecipe:
    ingredients: List[str]
    constraints: RecipeConstraints
    signature: str
    recipe: Dict[str, Any]
    nutrition: Dict[str, Any]


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreError(f"Failed to {action}: {e}") from e


def to_out(row) -> RecipeOut:
    return RecipeOut(
        id=row["id"],
        ingredients=json.loads(row["ingredients_json"]),
        recipe=json.loads(row["recipe_json"]),
        nutrition=json.loads(row["nutrition_json"]),
        constraints=RecipeConstraints.model_validate(json.loads(row["constraints_json"])),
        created_at=row["created_at"],
        is_favourite=bool(row["is_favourite"]),
        generation_count=row["generation_count"],
        signature=row["signature"],
    )


def _fetch(conn: Connection, recipe_id: int):
    return (
        conn.execute(select(recipes_table).where(recipes_table.c.id == recipe_id))
        .mappings()
        .first()
    )


class RecipeStore:
    """
    Recipe records in the SQL store.

    lookup/touch/insert form the fingerprint cache: a signature maps to the
    record generated for it, and every repeat request bumps its popularity.
    Nothing is kept in process memory; every call is a fresh query.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ---------------- fingerprint cache ----------------

    def lookup(self, signature: str) -> Optional[RecipeOut]:
        # Oldest first so a duplicate left by a racing insert never wins
        stmt = (
            select(recipes_table)
            .where(recipes_table.c.signature == signature)
            .order_by(recipes_table.c.id.asc())
            .limit(1)
        )
        with _store_errors("look up recipe"), self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return to_out(row) if row else None

    def touch(self, record: RecipeOut) -> RecipeOut:
        c = recipes_table.c
        with _store_errors("update recipe popularity"), self._engine.begin() as conn:
            conn.execute(
                update(recipes_table)
                .where(c.id == record.id)
                .values(generation_count=c.generation_count + 1)
            )
            row = _fetch(conn, record.id)
        if row is None:
            raise StoreError(f"Recipe {record.id} no longer exists")
        return to_out(row)

    def insert(self, new: NewRecipe) -> RecipeOut:
        values = {
            "signature": new.signature,
            "ingredients_json": json.dumps(new.ingredients),
            "recipe_json": json.dumps(new.recipe),
            "nutrition_json": json.dumps(new.nutrition),
            "constraints_json": json.dumps(new.constraints.model_dump()),
            "is_favourite": False,
            "generation_count": 1,
            "created_at": datetime.now(timezone.utc),
        }
        with _store_errors("save recipe"), self._engine.begin() as conn:
            res = conn.execute(insert(recipes_table).values(**values))
            row = _fetch(conn, res.inserted_primary_key[0])
        log.info("Recipe saved with id=%s", row["id"])
        return to_out(row)

    # ---------------- listings ----------------

    def list_recent(self) -> List[RecipeOut]:
        c = recipes_table.c
        return self._list(select(recipes_table).order_by(c.created_at.desc(), c.id.desc()))

    def list_popular(self, limit: int = POPULAR_LIMIT) -> List[RecipeOut]:
        c = recipes_table.c
        stmt = (
            select(recipes_table)
            .order_by(c.generation_count.desc(), c.created_at.desc(), c.id.desc())
            .limit(limit)
        )
        return self._list(stmt)

    def list_favourites(self) -> List[RecipeOut]:
        c = recipes_table.c
        stmt = (
            select(recipes_table)
            .where(c.is_favourite.is_(True))
            .order_by(c.created_at.desc(), c.id.desc())
        )
        return self._list(stmt)

    def _list(self, stmt) -> List[RecipeOut]:
        with _store_errors("fetch recipes"), self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [to_out(r) for r in rows]

    # ---------------- favourites ----------------

    def set_favourite(self, recipe_id: int, is_favourite: bool) -> Optional[RecipeOut]:
        with _store_errors("update favourite status"), self._engine.begin() as conn:
            res = conn.execute(
                update(recipes_table)
                .where(recipes_table.c.id == recipe_id)
                .values(is_favourite=is_favourite)
            )
            if res.rowcount == 0:
                return None
            row = _fetch(conn, recipe_id)
        return to_out(row)
