from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import Field
from sqlalchemy import insert, select

from pantry_chef.models import comments_table, posts_table
from pantry_chef.schemas import CamelModel


class PostCreate(CamelModel):
    title: Optional[str] = Field(default=None, max_length=200)
    body: Optional[str] = Field(default=None, max_length=10000)
    author: Optional[str] = Field(default=None, max_length=80)


class CommentCreate(CamelModel):
    body: Optional[str] = Field(default=None, max_length=2000)
    author: Optional[str] = Field(default=None, max_length=80)


class CommentOut(CamelModel):
    id: int
    post_id: int
    body: str
    author: Optional[str] = None
    created_at: datetime


class PostOut(CamelModel):
    id: int
    title: str
    body: str
    author: Optional[str] = None
    created_at: datetime
    comments: List[CommentOut] = []


def _require_text(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail=f"{field} is required")
    return value


def _normalize_author(author: Optional[str]) -> Optional[str]:
    author = " ".join((author or "").split())
    return author or None


def _comments_by_post(conn, post_ids: List[int]) -> Dict[int, List[CommentOut]]:
    out: Dict[int, List[CommentOut]] = defaultdict(list)
    if not post_ids:
        return out
    c = comments_table.c
    rows = (
        conn.execute(
            select(comments_table)
            .where(c.post_id.in_(post_ids))
            .order_by(c.created_at.asc(), c.id.asc())
        )
        .mappings()
        .all()
    )
    for r in rows:
        out[r["post_id"]].append(CommentOut(**dict(r)))
    return out


def _get_post(engine, post_id: int) -> PostOut:
    with engine.connect() as conn:
        row = (
            conn.execute(select(posts_table).where(posts_table.c.id == post_id))
            .mappings()
            .first()
        )
        if not row:
            raise HTTPException(status_code=404, detail="Post not found")
        comments = _comments_by_post(conn, [post_id])
    return PostOut(**dict(row), comments=comments[post_id])


def register_forum_routes(app: FastAPI, engine) -> None:
    @app.get("/posts", response_model=list[PostOut])
    def list_posts():
        p = posts_table.c
        with engine.connect() as conn:
            rows = (
                conn.execute(select(posts_table).order_by(p.created_at.desc(), p.id.desc()))
                .mappings()
                .all()
            )
            comments = _comments_by_post(conn, [r["id"] for r in rows])
        return [PostOut(**dict(r), comments=comments[r["id"]]) for r in rows]

    @app.get("/posts/{post_id}", response_model=PostOut)
    def get_post(post_id: int):
        return _get_post(engine, post_id)

    @app.post("/posts", response_model=PostOut)
    def create_post(body: PostCreate):
        values = {
            "title": _require_text(body.title, "title"),
            "body": _require_text(body.body, "body"),
            "author": _normalize_author(body.author),
            "created_at": datetime.now(timezone.utc),
        }
        with engine.begin() as conn:
            res = conn.execute(insert(posts_table).values(**values))
            post_id = res.inserted_primary_key[0]
        return _get_post(engine, post_id)

    @app.post("/posts/{post_id}/comments", response_model=CommentOut)
    def add_comment(post_id: int, body: CommentCreate):
        text = _require_text(body.body, "body")
        _get_post(engine, post_id)

        values = {
            "post_id": post_id,
            "body": text,
            "author": _normalize_author(body.author),
            "created_at": datetime.now(timezone.utc),
        }
        with engine.begin() as conn:
            res = conn.execute(insert(comments_table).values(**values))
            row = (
                conn.execute(
                    select(comments_table).where(comments_table.c.id == res.inserted_primary_key[0])
                )
                .mappings()
                .first()
            )
        return CommentOut(**dict(row))
