from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Depends, Request
import sqlalchemy
from fastapi_advanced_filters import (
    FilterSortBuilder,
    Repository,
    SortDirection,
    boolean_filter,
    filters_router,
    select_filter,
    timestamp_filter,
)
from fastapi_pagination import Page, add_pagination
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy import String, ForeignKey, select, func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column, relationship, declarative_base
import uvicorn

from examples.schemas import StatusEnum, PostResponse

# ───── App & DB Setup ───────────────────────────

DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(DATABASE_URL, echo=True)
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)
Base = declarative_base()


async def get_db():
    async with SessionLocal() as session:
        yield session


# ───── Models ────────────────────────────────────

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    is_admin: Mapped[bool] = mapped_column(default=False, nullable=False)

    posts: Mapped[list["Post"]] = relationship("Post", back_populates="user")


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String, index=True)
    body: Mapped[str] = mapped_column(String, nullable=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_featured: Mapped[bool] = mapped_column(default=False, nullable=False)
    status: Mapped[StatusEnum] = mapped_column(
        sqlalchemy.Enum(StatusEnum),
        default=StatusEnum.DRAFT,
        nullable=False
    )
    published_at: Mapped[datetime] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(timezone.utc))

    user: Mapped["User"] = relationship("User", back_populates="posts", lazy="selectin")


# ───── Filters ───────────────────────────────────

def admins_only(request: Request) -> bool:
    return request.headers.get("x-role") == "admin"


posts = Repository(
    Post,
    filters=[
        timestamp_filter("published-after", column=Post.published_at, operator="gte"),
        select_filter("status", {"Draft": StatusEnum.DRAFT, "Published": StatusEnum.PUBLISHED}, column=Post.status),
        boolean_filter("flags", {"Is Active": "is_active", "Is Featured": "is_featured"}),
    ],
    sorts=["id", "title", "created_at", "user.attributes.name"],
    matches={"title": "text", "id": "int", "is_active": "bool", "user_id": "array"},
    searchables=["title", "body", "status"],
)


@posts.filter("ready-posts")
def ready_posts(stmt, value):
    return stmt.where(Post.status == StatusEnum.PUBLISHED, Post.published_at.is_not(None))


@posts.filter("written-by", rules={"user_id": int, "include_drafts": bool | None})
def written_by(stmt, value):
    stmt = stmt.where(Post.user_id == value.input("user_id"))
    if not value.input("include_drafts", False):
        stmt = stmt.where(Post.status != StatusEnum.DRAFT)
    return stmt


@posts.filter("featured-by-admins", can_see=admins_only)
def featured_by_admins(stmt, value):
    return stmt.join(Post.user).where(User.is_admin.is_(True), Post.is_featured.is_(True))


@posts.sort("title-length")
def sort_by_title_length(stmt, direction):
    length = func.length(Post.title)
    return stmt.order_by(length.desc() if direction == SortDirection.DESC else length.asc())


# ───── Lifespan / Seed Data ─────────────────────

@asynccontextmanager
async def lifespan(_: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as session:
        result = await session.execute(select(User))
        if not result.scalars().first():
            alice = User(name="Alice", email="alice@example.com", is_admin=True)
            bob = User(name="Bob", email="bob@example.com")
            session.add_all([alice, bob])
            await session.commit()

            session.add_all([
                Post(title="Hello world", body="First post", user=alice,
                     status=StatusEnum.PUBLISHED, is_featured=True,
                     published_at=datetime(2024, 5, 1, 9, 30)),
                Post(title="Draft notes", body="Not ready yet", user=alice,
                     status=StatusEnum.DRAFT),
                Post(title="Release 1.0", body="Changelog", user=bob,
                     status=StatusEnum.PUBLISHED, published_at=datetime(2024, 6, 12, 14, 0)),
                Post(title="Archived", body="Old news", user=bob,
                     status=StatusEnum.ARCHIVED, is_active=False,
                     published_at=datetime(2023, 1, 3, 8, 0)),
            ])
            await session.commit()

    yield

# ───── FastAPI App ───────────────────────────────

app = FastAPI(lifespan=lifespan)

app.include_router(filters_router(posts, prefix="/posts", tags=["posts"]))


@app.get("/posts")
async def get_posts(query=FilterSortBuilder(posts), session: AsyncSession = Depends(get_db)):
    """
    Examples:

    1. Ready posts, newest id first
       GET /posts?filters=W3sia2V5IjogInJlYWR5LXBvc3RzIiwgInZhbHVlIjogbnVsbH1d&sort=-id

    2. Sort by author name
       GET /posts?sort=user.attributes.name

    3. Matches and search
       GET /posts?is_active=true&-title=Archived&search=release
    """
    result = await session.execute(query)
    return result.scalars().all()


@app.get("/posts/paginated", response_model=Page[PostResponse])
async def get_posts_paginated(query=FilterSortBuilder(posts), session: AsyncSession = Depends(get_db)):
    return await paginate(session, query)


add_pagination(app)

# ───── Run Server ────────────────────────────────

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
