from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    user_role = postgresql.ENUM("admin", "student", "instructor", name="userrole")

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), unique=True),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("role", user_role, server_default="student"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "courts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("location", sa.String(length=255)),
        sa.Column("hourly_price", sa.Numeric(10, 2)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
    )

    op.create_table(
        "instructors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
    )

    resource_type = postgresql.ENUM("court", "instructor", name="resourcetype")

    op.create_table(
        "weekly_availability",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("resource_type", resource_type, nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("starts_at", sa.Time(), nullable=False),
        sa.Column("ends_at", sa.Time(), nullable=False),
        sa.UniqueConstraint(
            "resource_type", "resource_id", "weekday", name="uq_availability_resource_weekday"
        ),
        sa.CheckConstraint("weekday BETWEEN 1 AND 7", name="ck_availability_weekday_iso"),
        sa.CheckConstraint("starts_at < ends_at", name="ck_availability_window_order"),
    )
    op.create_index("ix_weekly_availability_resource_id", "weekly_availability", ["resource_id"])

    booking_kind = postgresql.ENUM("court", "personal", name="bookingkind")
    booking_status = postgresql.ENUM("pending", "confirmed", "cancelled", name="bookingstatus")

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("kind", booking_kind, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("court_id", sa.Integer(), sa.ForeignKey("courts.id")),
        sa.Column("instructor_id", sa.Integer(), sa.ForeignKey("instructors.id")),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("ends_at", sa.DateTime(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), server_default="0"),
        sa.Column("status", booking_status, server_default="pending"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("canceled_at", sa.DateTime()),
        sa.Column("canceled_by", sa.String(length=64)),
        sa.CheckConstraint("starts_at < ends_at", name="ck_booking_interval_order"),
        sa.CheckConstraint(
            "(kind = 'court' AND court_id IS NOT NULL)"
            " OR (kind = 'personal' AND instructor_id IS NOT NULL)",
            name="ck_booking_kind_resource",
        ),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_court_id", "bookings", ["court_id"])
    op.create_index("ix_bookings_instructor_id", "bookings", ["instructor_id"])
    op.create_index("ix_bookings_starts_at", "bookings", ["starts_at"])

    op.create_table(
        "classes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("sport", sa.String(length=64)),
        sa.Column("description", sa.Text()),
        sa.Column("duration_min", sa.Integer(), server_default="60"),
        sa.Column("capacity_max", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.CheckConstraint("capacity_max > 0", name="ck_class_capacity_positive"),
        sa.CheckConstraint("duration_min > 0", name="ck_class_duration_positive"),
    )

    op.create_table(
        "class_schedules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("classes.id", ondelete="CASCADE")),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("starts_at", sa.Time(), nullable=False),
        sa.Column("instructor_id", sa.Integer(), sa.ForeignKey("instructors.id")),
        sa.Column("court_id", sa.Integer(), sa.ForeignKey("courts.id")),
        sa.CheckConstraint("weekday BETWEEN 1 AND 7", name="ck_class_schedule_weekday_iso"),
    )
    op.create_index("ix_class_schedules_class_id", "class_schedules", ["class_id"])

    occurrence_status = postgresql.ENUM(
        "scheduled", "confirmed", "cancelled", name="occurrencestatus"
    )

    op.create_table(
        "class_occurrences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("classes.id", ondelete="CASCADE")),
        sa.Column("instructor_id", sa.Integer(), sa.ForeignKey("instructors.id")),
        sa.Column("court_id", sa.Integer(), sa.ForeignKey("courts.id")),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("ends_at", sa.DateTime(), nullable=False),
        sa.Column("status", occurrence_status, server_default="scheduled"),
        sa.UniqueConstraint("class_id", "starts_at", name="uq_class_occurrence_class_time"),
        sa.CheckConstraint("starts_at < ends_at", name="ck_class_occurrence_interval_order"),
    )
    op.create_index("ix_class_occurrences_instructor_id", "class_occurrences", ["instructor_id"])
    op.create_index("ix_class_occurrences_court_id", "class_occurrences", ["court_id"])
    op.create_index("ix_class_occurrences_starts_at", "class_occurrences", ["starts_at"])

    enrollment_status = postgresql.ENUM("enrolled", "cancelled", name="enrollmentstatus")

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "occurrence_id",
            sa.Integer(),
            sa.ForeignKey("class_occurrences.id", ondelete="CASCADE"),
        ),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("classes.id", ondelete="CASCADE")),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("status", enrollment_status, server_default="enrolled"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("occurrence_id", "user_id", name="uq_enrollment_occurrence_user"),
    )
    op.create_index("ix_enrollments_occurrence_id", "enrollments", ["occurrence_id"])

    charge_status = postgresql.ENUM(
        "pending", "partially_paid", "paid", "cancelled", "refunded", name="chargestatus"
    )
    charge_reference = postgresql.ENUM(
        "court_booking", "personal_session", "class_enrollment", name="chargereference"
    )

    op.create_table(
        "charges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("reference_type", charge_reference),
        sa.Column("reference_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2)),
        sa.Column("currency", sa.CHAR(length=3), server_default="BRL"),
        sa.Column("description", sa.String(length=255)),
        sa.Column("due_date", sa.Date()),
        sa.Column("status", charge_status, server_default="pending"),
        sa.Column("order_id", sa.String(length=64)),
        sa.Column("payment_url", sa.String(length=512)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("order_id", name="uq_charge_order_id"),
    )
    op.create_index("ix_charges_order_id", "charges", ["order_id"])
    op.create_index("ix_charge_reference", "charges", ["reference_type", "reference_id"])

    actor_type = postgresql.ENUM("user", "admin", "system", name="actortype")

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_type", actor_type),
        sa.Column("actor_id", sa.Integer()),
        sa.Column("action", sa.String(length=255)),
        sa.Column("payload", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_index("ix_charge_reference", table_name="charges")
    op.drop_index("ix_charges_order_id", table_name="charges")
    op.drop_table("charges")
    op.drop_index("ix_enrollments_occurrence_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_class_occurrences_starts_at", table_name="class_occurrences")
    op.drop_index("ix_class_occurrences_court_id", table_name="class_occurrences")
    op.drop_index("ix_class_occurrences_instructor_id", table_name="class_occurrences")
    op.drop_table("class_occurrences")
    op.drop_index("ix_class_schedules_class_id", table_name="class_schedules")
    op.drop_table("class_schedules")
    op.drop_table("classes")
    op.drop_index("ix_bookings_starts_at", table_name="bookings")
    op.drop_index("ix_bookings_instructor_id", table_name="bookings")
    op.drop_index("ix_bookings_court_id", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_weekly_availability_resource_id", table_name="weekly_availability")
    op.drop_table("weekly_availability")
    op.drop_table("instructors")
    op.drop_table("courts")
    op.drop_table("users")
    for name in (
        "actortype",
        "chargereference",
        "chargestatus",
        "enrollmentstatus",
        "occurrencestatus",
        "bookingstatus",
        "bookingkind",
        "resourcetype",
        "userrole",
    ):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
