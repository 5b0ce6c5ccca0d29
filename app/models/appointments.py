"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

# Statuses that hold a slot
ACTIVE_STATUS_SQL = "status IN ('pending', 'confirmed')"

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True),
    # Ownership
    Column("patient_id", Uuid(as_uuid=True), nullable=False, index=True),
    Column("patient_email", Text, nullable=False),
    # Doctor snapshot (name denormalized for history)
    Column("department", Text, nullable=False),
    Column("doctor_id", Uuid(as_uuid=True), nullable=False, index=True),
    Column("doctor_name", Text, nullable=False),
    # Slot
    Column("appointment_date", Date, nullable=False, index=True),
    Column("appointment_time", String(5), nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default=text("'pending'"), index=True),
    Column("is_emergency", Boolean, nullable=False, server_default=text("false")),
    Column("notes", Text, nullable=True),
    Column("cancelled_by", Text, nullable=True),
    Column("cancellation_reason", Text, nullable=True),
    Column("confirmed_at", DateTime(timezone=True), nullable=True),
    Column("auto_cancelled_at", DateTime(timezone=True), nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "department IN ('general', 'cardiology', 'pediatrics', 'orthopedics', "
        "'neurology', 'dermatology')",
        name="appointments_department_check",
    ),
    CheckConstraint(
        "cancelled_by IS NULL OR cancelled_by IN ('patient', 'doctor', 'system')",
        name="appointments_cancelled_by_check",
    ),
    CheckConstraint(
        "status <> 'cancelled' OR cancelled_by IS NOT NULL",
        name="appointments_cancelled_by_required",
    ),
    CheckConstraint(
        "cancelled_by IS NULL OR cancelled_by <> 'doctor' "
        "OR length(trim(cancellation_reason)) > 0",
        name="appointments_doctor_reason_required",
    ),
    # One active appointment per doctor slot
    Index(
        "uq_appointments_active_slot",
        "doctor_id",
        "appointment_date",
        "appointment_time",
        unique=True,
        postgresql_where=text(ACTIVE_STATUS_SQL),
        sqlite_where=text(ACTIVE_STATUS_SQL),
    ),
    # Scan of pending appointments by the expiry sweep
    Index(
        "ix_appointments_pending_schedule",
        "appointment_date",
        "appointment_time",
        postgresql_where=text("status = 'pending'"),
        sqlite_where=text("status = 'pending'"),
    ),
)
