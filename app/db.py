from collections.abc import AsyncGenerator
from datetime import UTC, datetime

from fastapi import Depends
from fastapi_users_db_sqlalchemy import (
    SQLAlchemyBaseOAuthAccountTableUUID,
    SQLAlchemyBaseUserTableUUID,
    SQLAlchemyUserDatabase,
)
from sqlalchemy import (
    TIMESTAMP,
    BigInteger,
    Column,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, relationship

from app.config import config

DATABASE_URL = config.DATABASE_URL

# fastapi-users OAuth provider name for the Google account
GOOGLE_OAUTH_NAME = "google"


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    @declared_attr
    def created_at(cls):
        return Column(
            TIMESTAMP(timezone=True),
            nullable=False,
            default=lambda: datetime.now(UTC),
            index=True,
        )


class BaseModel(Base):
    __abstract__ = True
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)


class OAuthAccount(SQLAlchemyBaseOAuthAccountTableUUID, Base):
    """
    Google account linked to a user.

    Holds the Drive credential: ``access_token``, ``refresh_token`` and
    ``expires_at`` (epoch seconds). ``account_id`` is the Google subject id.
    """


class User(SQLAlchemyBaseUserTableUUID, Base):
    display_name = Column(String(255), nullable=True)

    oauth_accounts: Mapped[list[OAuthAccount]] = relationship(
        "OAuthAccount", lazy="joined"
    )
    files = relationship(
        "FileRecord", back_populates="owner", cascade="all, delete-orphan"
    )


class FileRecord(BaseModel, TimestampMixin):
    """Local metadata mirroring one Drive object owned by one user."""

    __tablename__ = "file_records"

    owner_id = Column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner = relationship("User", back_populates="files")

    # Drive file id, join key to the remote object
    remote_id = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    original_name = Column(String, nullable=True)
    size = Column(BigInteger, nullable=True)
    mime_type = Column(String(255), nullable=True)
    view_link = Column(String, nullable=True)
    download_link = Column(String, nullable=True)


engine = create_async_engine(DATABASE_URL)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    yield SQLAlchemyUserDatabase(session, User, OAuthAccount)
