"""001 – Initial schema: users, roles, sessions, profiles, leave requests.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["hr", "employee"]),
    ("leave_status", ["pending", "approved", "rejected"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email       VARCHAR(255) NOT NULL UNIQUE,
            full_name   VARCHAR(200) NOT NULL,
            google_id   VARCHAR(100) UNIQUE,
            is_active   BOOLEAN DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. user_roles (absent row = employee) ─────────────────────────────
    op.execute("""
        CREATE TABLE user_roles (
            user_id     UUID PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            role        user_role NOT NULL,
            assigned_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 3. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash  VARCHAR(512) NOT NULL,
            ip_address  INET,
            user_agent  TEXT,
            expires_at  TIMESTAMPTZ NOT NULL,
            is_revoked  BOOLEAN DEFAULT FALSE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_user_sessions_user    ON user_sessions(user_id)")
    op.execute("CREATE INDEX idx_user_sessions_token   ON user_sessions(token_hash)")
    op.execute("CREATE INDEX idx_user_sessions_expires ON user_sessions(expires_at)")

    # ── 4. profiles ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE profiles (
            id                      UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id                 UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            full_name               VARCHAR(200) NOT NULL,
            email                   VARCHAR(255) NOT NULL UNIQUE,
            phone                   VARCHAR(30),
            department              VARCHAR(100),
            position                VARCHAR(100),
            status                  VARCHAR(20) DEFAULT 'active',
            salary                  NUMERIC(12, 2),
            join_date               DATE,
            remaining_annual_leave  NUMERIC(5, 1),
            remaining_sick_leave    NUMERIC(5, 1),
            avatar_url              TEXT,
            created_at              TIMESTAMPTZ DEFAULT NOW(),
            updated_at              TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_profiles_annual_leave_non_negative CHECK (remaining_annual_leave >= 0),
            CONSTRAINT ck_profiles_sick_leave_non_negative   CHECK (remaining_sick_leave >= 0),
            CONSTRAINT ck_profiles_salary_non_negative       CHECK (salary >= 0)
        )
    """)
    op.execute("CREATE INDEX idx_profiles_full_name ON profiles(full_name)")

    # ── 5. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            profile_id  UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            leave_type  VARCHAR(32) NOT NULL,
            days        NUMERIC(4, 1) NOT NULL,
            status      leave_status NOT NULL DEFAULT 'pending',
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_requests_days_positive CHECK (days > 0)
        )
    """)
    op.execute("CREATE INDEX ix_leave_requests_status  ON leave_requests(status)")
    op.execute("CREATE INDEX idx_leave_requests_created ON leave_requests(created_at DESC, id)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "leave_requests",
        "profiles",
        "user_sessions",
        "user_roles",
        "users",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
