"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route, dependency and service code never touches SQL directly.

Every write path runs the same explicit steps, in order:
  1. validate the incoming fields (auth/validators.py),
  2. hash the password -- only create_user() and change_secret() ever receive
     a plaintext, so hashing happens exactly once per password change and an
     already-hashed value can never be hashed again,
  3. persist in a single statement, so a failure leaves nothing half-written.

Security:
  All queries use bound parameters. No f-strings in SQL.

  password_hash is excluded from every SELECT unless the caller passes
  include_secret=True. Only credential checks ask for it.

  Phone and email uniqueness are enforced by UNIQUE constraints. The
  pre-insert lookups in create_user() are a fast path for a friendly error;
  the IntegrityError mapping below is what actually stops two concurrent
  registrations of the same phone. Email is nullable and SQL treats NULLs as
  distinct, so any number of accounts may have no email.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError, InternalError, ValidationError
from auth.models import (
    DEFAULT_CITY,
    DEFAULT_DISTRICT,
    DEFAULT_PROFILE_IMAGE,
    Address,
    NewUser,
    Role,
    User,
)
from auth.passwords import DEFAULT_ROUNDS, DUMMY_PASSWORD, hash_password, verify_password
from auth.validators import check_email, check_name, check_password, check_phone, check_role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False),
    Column("phone", String(11), nullable=False, unique=True),
    Column("email", String(255), unique=True),  # NULL allowed, many times
    Column("password_hash", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default=Role.customer.value, index=True),
    Column("profile_image", Text, nullable=False, server_default=DEFAULT_PROFILE_IMAGE),
    Column("address_street", Text),
    Column("address_area", Text),
    Column("address_city", Text, nullable=False, server_default=DEFAULT_CITY),
    Column("address_district", Text, nullable=False, server_default=DEFAULT_DISTRICT),
    Column("longitude", Float, nullable=False, server_default="0"),
    Column("latitude", Float, nullable=False, server_default="0"),
    Column("loyalty_points", Integer, nullable=False, server_default="0"),
    Column("total_referrals", Integer, nullable=False, server_default="0"),
    Column("fcm_token", Text),  # push notification token, stored only
    Column("is_verified", Integer, nullable=False, server_default="0"),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("last_login", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    CheckConstraint("loyalty_points >= 0", name="ck_users_loyalty_points_non_negative"),
    CheckConstraint("role IN ('customer', 'shopkeeper', 'admin')", name="ck_users_role"),
)

# Everything except the secret. Used for every read that is not a credential check.
_PUBLIC_COLUMNS = [c for c in _users.c if c.name != "password_hash"]

# The only fields PUT /profile may touch.
PROFILE_FIELDS = frozenset({"name", "email", "profile_image", "address"})
_ADDRESS_FIELDS = ("street", "area", "city", "district")


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _integrity_error(exc: IntegrityError) -> ConflictError | InternalError:
    """Map a driver IntegrityError to the error the client sees.

    Only a UNIQUE violation on phone or email is a conflict. CHECK and NOT NULL
    failures mean the store wrote something it should have refused, which is
    a server fault.
    """
    detail = str(exc.orig).lower()
    if "unique" in detail or "duplicate" in detail:
        if "email" in detail:
            return ConflictError("Email already registered")
        if "phone" in detail:
            return ConflictError("Phone number already registered")
    return InternalError(f"Integrity violation on users: {exc.orig}")


def _active_admin_count():
    # Counted over an alias so the subquery never correlates with an UPDATE on users.
    admins = _users.alias("active_admins")
    return (
        select(func.count())
        .select_from(admins)
        .where((admins.c.role == Role.admin.value) & (admins.c.is_active == 1))
        .scalar_subquery()
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records and the owner of at-rest password hashing.

    Usage:
        store = UserStore()
        user = store.create_user(NewUser(name="Ali Khan", phone="03001234567", password="Abcd1234", role=Role.customer))
        found = store.find_by_phone("03001234567", include_secret=True)
        store.verify_secret("Abcd1234", found.password_hash)
        store.close()
    """

    def __init__(self, db_url: str, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        self._bcrypt_rounds = bcrypt_rounds
        # Same work factor as every stored hash; see verify_unknown().
        self.dummy_hash = hash_password(DUMMY_PASSWORD, bcrypt_rounds)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _select(self, include_secret: bool):
        return _users.select() if include_secret else select(*_PUBLIC_COLUMNS)

    def find_by_phone(self, phone: str, include_secret: bool = False) -> User | None:
        """Look up a user by phone. The hash is loaded only when include_secret is True."""
        with self.engine.connect() as conn:
            row = conn.execute(self._select(include_secret).where(_users.c.phone == phone)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: int, include_secret: bool = False) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(self._select(include_secret).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_email(self, email: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(self._select(False).where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, role: Role | None = None) -> list[User]:
        """Return all users, newest first, optionally filtered by role. Secret excluded."""
        query = self._select(False).order_by(_users.c.id.desc())
        if role is not None:
            query = query.where(_users.c.role == Role(role).value)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_active_admins(self) -> int:
        """Return the number of active admin users."""
        with self.engine.connect() as conn:
            result = conn.execute(select(_active_admin_count())).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, candidate: NewUser) -> User:
        """Validate, hash and insert a new user. Returns the stored record without its secret.

        Raises ValidationError for bad fields and ConflictError when the phone
        or email is already registered, including when a concurrent request
        wins the race between the pre-check and the insert.
        """
        name = check_name(candidate.name)
        phone = check_phone(candidate.phone)
        email = check_email(candidate.email)
        if candidate.role is None:
            raise ValidationError("Role is required")
        role = check_role(candidate.role)
        password = check_password(candidate.password)

        if self.find_by_phone(phone) is not None:
            raise ConflictError("Phone number already registered")
        if email is not None and self.find_by_email(email) is not None:
            raise ConflictError("Email already registered")

        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=name,
                        phone=phone,
                        email=email,
                        password_hash=hash_password(password, self._bcrypt_rounds),
                        role=role.value,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise _integrity_error(exc) from exc

        created = self.find_by_id(user_id)
        if created is None:
            raise InternalError("User not found after write")
        return created

    def update_profile(self, user_id: int, **fields) -> User | None:
        """Apply an allow-listed partial update and return the fresh record.

        Accepted fields: name, email, profile_image, address (a mapping of
        street/area/city/district). Any other key -- password, role, is_active,
        phone -- raises ValidationError before anything is written. None values
        are skipped, so absent request fields leave stored values untouched.

        Returns None if user_id does not exist.
        """
        rejected = set(fields) - PROFILE_FIELDS
        if rejected:
            raise ValidationError(f"Fields cannot be updated through the profile: {', '.join(sorted(rejected))}")

        values: dict = {}
        if fields.get("name") is not None:
            values["name"] = check_name(fields["name"])
        if fields.get("email") is not None:
            values["email"] = check_email(fields["email"])
        if fields.get("profile_image") is not None:
            image = fields["profile_image"].strip()
            values["profile_image"] = image or DEFAULT_PROFILE_IMAGE
        if fields.get("address") is not None:
            values.update(_address_values(fields["address"]))

        if not values:
            return self.find_by_id(user_id)

        values["updated_at"] = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise _integrity_error(exc) from exc
        if result.rowcount == 0:
            return None
        return self.find_by_id(user_id)

    def change_secret(self, user_id: int, new_plain: str) -> bool:
        """Re-hash and store a new password. Touches nothing else.

        Issued tokens are not affected: they stay valid until they expire.
        Returns True if a row was updated, False if user_id was not found.
        """
        check_password(new_plain, "New password")
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(password_hash=hash_password(new_plain, self._bcrypt_rounds), updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def verify_secret(self, plain: str, stored_hash: str | None) -> bool:
        """Return True if plain matches stored_hash. A missing hash never matches."""
        if not stored_hash:
            return False
        return verify_password(plain, stored_hash)

    def verify_unknown(self, plain: str) -> bool:
        """Spend one bcrypt comparison on a login for a phone with no account.

        Runs against dummy_hash, which shares this store's work factor, so the
        rejection costs as much as a wrong password for a real account.
        Always returns False.
        """
        verify_password(plain, self.dummy_hash)
        return False

    def touch_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    def set_active(self, user_id: int, active: bool, keep_admin: bool = False) -> bool:
        """Activate or deactivate an account. Deactivation is the only removal path.

        With keep_admin=True, deactivating the only active admin matches no
        row: the admin count is evaluated in the same UPDATE statement, so
        concurrent deactivations cannot both pass it.

        Returns True if a row was updated, False if user_id was not found or
        the last-admin condition refused the change.
        """
        stmt = (
            _users.update()
            .where(_users.c.id == user_id)
            .values(is_active=1 if active else 0, updated_at=_now_iso())
        )
        if keep_admin and not active:
            stmt = stmt.where(
                (_users.c.role != Role.admin.value) | (_users.c.is_active == 0) | (_active_admin_count() > 1)
            )
        with self.engine.connect() as conn:
            result = conn.execute(stmt)
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _address_values(address: Address | Mapping) -> dict:
    if isinstance(address, Address):
        address = vars(address)
    unknown = set(address) - set(_ADDRESS_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown address fields: {', '.join(sorted(unknown))}")
    values = {}
    for key in _ADDRESS_FIELDS:
        value = address.get(key)
        if value is not None:
            values[f"address_{key}"] = value.strip()
    return values


def _row_to_user(row) -> User:
    # password_hash is absent from rows selected with _PUBLIC_COLUMNS.
    return User(
        id=row.id,
        name=row.name,
        phone=row.phone,
        email=row.email,
        password_hash=getattr(row, "password_hash", None),
        role=Role(row.role),
        profile_image=row.profile_image,
        address=Address(
            street=row.address_street,
            area=row.address_area,
            city=row.address_city,
            district=row.address_district,
        ),
        location=(row.longitude, row.latitude),
        loyalty_points=row.loyalty_points,
        total_referrals=row.total_referrals,
        fcm_token=row.fcm_token,
        is_verified=bool(row.is_verified),
        is_active=bool(row.is_active),
        last_login=row.last_login,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
