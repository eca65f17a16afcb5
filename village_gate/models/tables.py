# =======================================================================================
# village_gate/models/tables.py - Relational Tables
# =======================================================================================
"""
Only the tables the gate subsystem touches. Every row carries a tenant_id and
every query against them must filter on it.
"""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects import mysql

metadata = MetaData()

# MySQL DATETIME drops fractional seconds unless fsp is given, which would
# break natural-key comparisons for events recorded within the same second.
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")

ID_LENGTH = 36

user_profiles = Table(
    "user_profiles",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("tenant_id", String(ID_LENGTH), nullable=False, index=True),
    Column("role", String(32), nullable=False),
    Column("username", String(150), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("full_name", String(255)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", Timestamp, nullable=False),
)

auth_tokens = Table(
    "auth_tokens",
    metadata,
    Column("token_hash", String(64), primary_key=True),
    Column("user_id", String(ID_LENGTH), nullable=False, index=True),
    Column("created_at", Timestamp, nullable=False),
    Column("expires_at", Timestamp, nullable=False),
)

entry_exit_logs = Table(
    "entry_exit_logs",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("tenant_id", String(ID_LENGTH), nullable=False),
    Column("gate_id", String(ID_LENGTH), nullable=False),
    Column("entry_type", String(32), nullable=False),
    Column("direction", String(8), nullable=False),
    Column("timestamp", Timestamp, nullable=False),
    Column("sticker_id", String(ID_LENGTH)),
    Column("guest_id", String(ID_LENGTH)),
    Column("permit_id", String(ID_LENGTH)),
    Column("guard_on_duty_id", String(ID_LENGTH), nullable=False),
    Column("vehicle_plate", String(32)),
    Column("purpose", Text),
    Column("notes", Text),
    Column("created_at", Timestamp, nullable=False),
    UniqueConstraint(
        "tenant_id", "timestamp", "gate_id", "vehicle_plate",
        name="uq_entry_exit_logs_natural_key",
    ),
    Index("ix_entry_exit_logs_tenant_timestamp", "tenant_id", "timestamp"),
)

guest_approval_requests = Table(
    "guest_approval_requests",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("tenant_id", String(ID_LENGTH), nullable=False),
    Column("household_id", String(ID_LENGTH), nullable=False),
    Column("guest_name", String(255), nullable=False),
    Column("vehicle_plate", String(32)),
    Column("gate_id", String(ID_LENGTH), nullable=False),
    Column("requested_by_guard_id", String(ID_LENGTH), nullable=False),
    Column("status", String(16), nullable=False, default="pending"),
    Column("created_at", Timestamp, nullable=False),
    Column("timeout_at", Timestamp, nullable=False),
    Column("responded_at", Timestamp),
    Index("ix_guest_approval_requests_tenant_status", "tenant_id", "status"),
    Index("ix_guest_approval_requests_status_timeout", "status", "timeout_at"),
)
