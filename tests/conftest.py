from datetime import datetime

import pytest
from sqlalchemy import ForeignKey, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship
from sqlalchemy.pool import StaticPool

from fastapi_advanced_filters import Repository, advanced_filter, boolean_filter, select_filter, timestamp_filter


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String)
    is_admin: Mapped[bool] = mapped_column(default=False)

    posts: Mapped[list["Post"]] = relationship(back_populates="user")


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String)
    body: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default="draft")
    views: Mapped[int] = mapped_column(default=0)
    is_active: Mapped[bool] = mapped_column(default=True)
    is_featured: Mapped[bool] = mapped_column(default=False)
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    user: Mapped["User"] = relationship(back_populates="posts")


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        alice = User(id=1, name="Alice", is_admin=True)
        bob = User(id=2, name="Bob")
        session.add_all([
            Post(id=1, title="Hello world", body="First post", status="published", views=10,
                 is_featured=True, published_at=datetime(2024, 5, 1, 9, 30), user=alice),
            Post(id=2, title="Draft notes", body="Not ready", status="draft", views=0, user=alice),
            Post(id=3, title="Release 1.0", body="Changelog", status="published", views=42,
                 published_at=datetime(2024, 6, 12, 14, 0), user=bob),
            Post(id=4, title="Archived", body=None, status="archived", views=3, is_active=False,
                 published_at=datetime(2023, 1, 3, 8, 0), user=bob),
        ])
        session.commit()
        yield session


@pytest.fixture
def applied():
    """Keys of the filters whose apply function ran, in order."""
    return []


@pytest.fixture
def repository(applied):
    def ready_posts(stmt, value):
        applied.append("ready-posts")
        return stmt.where(Post.status == "published", Post.published_at.is_not(None))

    def min_views(stmt, value):
        applied.append("min-views")
        return stmt.where(Post.views >= value.input("views", 0))

    def admin_only(stmt, value):
        applied.append("admin-only")
        return stmt.where(Post.is_featured.is_(True))

    def active_boolean(stmt, value):
        applied.append("active-boolean-filter")
        return stmt.where(Post.is_active.is_(value.input("is_active")))

    return Repository(
        Post,
        filters=[
            advanced_filter("ready-posts", ready_posts),
            advanced_filter("min-views", min_views, rules={"views": int}),
            advanced_filter("admin-only", admin_only, can_see=lambda context: context == "admin"),
            boolean_filter("active-boolean-filter", {"Is Active": "is_active"}, apply=active_boolean),
            boolean_filter("flags", {"Is Active": "is_active", "Is Featured": "is_featured"}),
            select_filter("status", {"Published": "published", "Draft": "draft"}, column=Post.status),
            timestamp_filter("published-on", column=Post.published_at),
            timestamp_filter("published-after", column=Post.published_at, operator="gt"),
        ],
        sorts=["id", "title", "user.attributes.name"],
        matches={"title": "text", "id": "int", "is_active": "bool", "user_id": "array", "body": "text"},
        searchables=["title", "body", "views"],
    )


def ids(session, stmt):
    return [post.id for post in session.scalars(stmt).unique().all()]
