"""Initial schema and seed data for SafeTrade

Revision ID: 20260115_000000
Revises: None
Create Date: 2026-01-15 00:00:00.000000

This is the initial migration that creates all tables of the SafeTrade
marketplace and seeds reference data. This includes:
- Member tables (user profiles, identity verifications, phone codes)
- Marketplace tables (listings, favorites, conversations, messages)
- Safe zone tables (safe zones, reviews, meetings)
- Deal agreement tables (agreements, privacy protection log)
- Vehicle history tables (stolen vehicles, VIN verification history)
- A starter set of verified safe zones

Revision format: YYYYMMDD_HHMMSS_description

"""

import uuid
from datetime import datetime, timezone
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20260115_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(36), nullable=False)


def upgrade() -> None:
    """Create all tables and seed initial data."""

    # Create user_profiles table
    op.create_table(
        "user_profiles",
        _id_column(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("identity_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_level", sa.String(16), nullable=False, server_default="none"),
        sa.Column("verification_status", sa.String(16), nullable=False, server_default="unverified"),
        sa.Column("trust_score", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("phone_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("phone_verified_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_user_profiles_email", "email", unique=True),
    )

    # Create user_verifications table
    op.create_table(
        "user_verifications",
        _id_column(),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("verification_type", sa.String(32), nullable=False, server_default="identity"),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("id_document_score", sa.Integer(), nullable=True),
        sa.Column("photo_score", sa.Integer(), nullable=True),
        sa.Column("face_match_score", sa.Integer(), nullable=True),
        sa.Column("document_type", sa.String(32), nullable=True),
        sa.Column("details", JSONB(), nullable=False, server_default="{}"),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "verification_type", name="uq_user_verifications_user_type"),
        sa.Index("ix_user_verifications_user_id", "user_id"),
    )

    # Create phone_verifications table
    op.create_table(
        "phone_verifications",
        _id_column(),
        sa.Column("phone_number", sa.String(32), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_phone_verifications_phone_number", "phone_number"),
        sa.Index("ix_phone_verifications_created_at", "created_at"),
    )

    # Create listings table
    op.create_table(
        "listings",
        _id_column(),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(2000), nullable=False, server_default=""),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("make", sa.String(50), nullable=False),
        sa.Column("model", sa.String(50), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("mileage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("condition", sa.String(16), nullable=False),
        sa.Column("vin", sa.String(17), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("zip_code", sa.String(10), nullable=True),
        sa.Column("images", JSONB(), nullable=False, server_default="[]"),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("vin_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("theft_record_checked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("theft_record_found", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("vin_verification_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_listings_user_id", "user_id"),
        sa.Index("ix_listings_make", "make"),
        sa.Index("ix_listings_vin", "vin"),
        sa.Index("ix_listings_status", "status"),
        sa.Index("ix_listings_created_at", "created_at"),
    )

    # Create favorites table
    op.create_table(
        "favorites",
        _id_column(),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("listing_id", sa.String(36), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "listing_id", name="uq_favorites_user_listing"),
        sa.Index("ix_favorites_user_id", "user_id"),
        sa.Index("ix_favorites_listing_id", "listing_id"),
    )

    # Create conversations table
    op.create_table(
        "conversations",
        _id_column(),
        sa.Column("listing_id", sa.String(36), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("buyer_id", sa.String(36), nullable=False),
        sa.Column("seller_id", sa.String(36), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("security_level", sa.String(16), nullable=False, server_default="standard"),
        sa.Column("security_flags", JSONB(), nullable=False, server_default="[]"),
        sa.Column("fraud_alerts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_message_preview", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("listing_id", "buyer_id", "seller_id", name="uq_conversations_listing_buyer_seller"),
        sa.Index("ix_conversations_listing_id", "listing_id"),
        sa.Index("ix_conversations_buyer_id", "buyer_id"),
        sa.Index("ix_conversations_seller_id", "seller_id"),
        sa.Index("ix_conversations_updated_at", "updated_at"),
    )

    # Create messages table
    op.create_table(
        "messages",
        _id_column(),
        sa.Column("conversation_id", sa.String(36), sa.ForeignKey("conversations.id"), nullable=False),
        sa.Column("sender_id", sa.String(36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(16), nullable=False, server_default="text"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(16), nullable=False, server_default="sent"),
        sa.Column("fraud_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("fraud_flags", JSONB(), nullable=False, server_default="[]"),
        sa.Column("fraud_risk_level", sa.String(16), nullable=False, server_default="low"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_messages_conversation_id", "conversation_id"),
        sa.Index("ix_messages_sender_id", "sender_id"),
        sa.Index("ix_messages_created_at", "created_at"),
    )

    # Create safe_zones table
    op.create_table(
        "safe_zones",
        _id_column(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("address", sa.String(300), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("zip_code", sa.String(10), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("zone_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending_verification"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("operating_hours", JSONB(), nullable=False, server_default="{}"),
        sa.Column("features", JSONB(), nullable=False, server_default="[]"),
        sa.Column("security_level", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("average_rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_meetings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("security_level BETWEEN 1 AND 5", name="ck_safe_zones_security_level"),
        sa.Index("ix_safe_zones_city", "city"),
        sa.Index("ix_safe_zones_zone_type", "zone_type"),
        sa.Index("ix_safe_zones_status", "status"),
    )

    # Create safe_zone_reviews table
    op.create_table(
        "safe_zone_reviews",
        _id_column(),
        sa.Column("safe_zone_id", sa.String(36), sa.ForeignKey("safe_zones.id"), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("meeting_id", sa.String(36), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("review_text", sa.String(1000), nullable=True),
        sa.Column("safety_rating", sa.Integer(), nullable=True),
        sa.Column("cleanliness_rating", sa.Integer(), nullable=True),
        sa.Column("accessibility_rating", sa.Integer(), nullable=True),
        sa.Column("helpful_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("safe_zone_id", "user_id", name="uq_safe_zone_reviews_zone_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_safe_zone_reviews_rating"),
        sa.Index("ix_safe_zone_reviews_safe_zone_id", "safe_zone_id"),
        sa.Index("ix_safe_zone_reviews_user_id", "user_id"),
    )

    # Create safe_zone_meetings table
    op.create_table(
        "safe_zone_meetings",
        _id_column(),
        sa.Column("safe_zone_id", sa.String(36), sa.ForeignKey("safe_zones.id"), nullable=False),
        sa.Column("listing_id", sa.String(36), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("buyer_id", sa.String(36), nullable=False),
        sa.Column("seller_id", sa.String(36), nullable=False),
        sa.Column("scheduled_datetime", sa.DateTime(), nullable=False),
        sa.Column("estimated_duration_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("status", sa.String(16), nullable=False, server_default="scheduled"),
        sa.Column("buyer_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("seller_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("buyer_checked_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("seller_checked_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("buyer_checkin_time", sa.DateTime(), nullable=True),
        sa.Column("seller_checkin_time", sa.DateTime(), nullable=True),
        sa.Column("safety_code", sa.String(6), nullable=False),
        sa.Column("meeting_notes", sa.String(500), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("cancelled_by", sa.String(36), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("meeting_successful", sa.Boolean(), nullable=True),
        sa.Column("transaction_completed", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_safe_zone_meetings_safe_zone_id", "safe_zone_id"),
        sa.Index("ix_safe_zone_meetings_listing_id", "listing_id"),
        sa.Index("ix_safe_zone_meetings_buyer_id", "buyer_id"),
        sa.Index("ix_safe_zone_meetings_seller_id", "seller_id"),
        sa.Index("ix_safe_zone_meetings_scheduled_datetime", "scheduled_datetime"),
        sa.Index("ix_safe_zone_meetings_status", "status"),
    )

    # Create deal_agreements table
    op.create_table(
        "deal_agreements",
        _id_column(),
        sa.Column("conversation_id", sa.String(36), nullable=False),
        sa.Column("listing_id", sa.String(36), nullable=False),
        sa.Column("buyer_id", sa.String(36), nullable=False),
        sa.Column("seller_id", sa.String(36), nullable=False),
        sa.Column("buyer_agreed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("seller_agreed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("buyer_agreed_at", sa.DateTime(), nullable=True),
        sa.Column("seller_agreed_at", sa.DateTime(), nullable=True),
        sa.Column("agreed_price", sa.Integer(), nullable=True),
        sa.Column("original_price", sa.Integer(), nullable=True),
        sa.Column("safe_zone_id", sa.String(36), nullable=True),
        sa.Column("custom_meeting_location", sa.String(500), nullable=True),
        sa.Column("meeting_datetime", sa.DateTime(), nullable=True),
        sa.Column("privacy_revealed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("privacy_revealed_at", sa.DateTime(), nullable=True),
        sa.Column("deal_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("conversation_id", "listing_id", name="uq_deal_agreements_conversation_listing"),
        sa.Index("ix_deal_agreements_conversation_id", "conversation_id"),
        sa.Index("ix_deal_agreements_listing_id", "listing_id"),
    )

    # Create privacy_protection_log table
    op.create_table(
        "privacy_protection_log",
        _id_column(),
        sa.Column("deal_agreement_id", sa.String(36), sa.ForeignKey("deal_agreements.id"), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("revealed_to_user_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_privacy_protection_log_deal_agreement_id", "deal_agreement_id"),
    )

    # Create stolen_vehicles table
    op.create_table(
        "stolen_vehicles",
        _id_column(),
        sa.Column("vin", sa.String(17), nullable=False),
        sa.Column("report_id", sa.String(64), nullable=False),
        sa.Column("reported_date", sa.DateTime(), nullable=False),
        sa.Column("reporting_agency", sa.String(200), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_stolen_vehicles_vin", "vin"),
    )

    # Create vin_verification_history table
    op.create_table(
        "vin_verification_history",
        _id_column(),
        sa.Column("vin", sa.String(17), nullable=False),
        sa.Column("is_stolen", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("checksum_valid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("decoded_year", sa.Integer(), nullable=True),
        sa.Column("decoded_make", sa.String(50), nullable=True),
        sa.Column("report", JSONB(), nullable=False, server_default="{}"),
        sa.Column("check_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("checked_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_vin_verification_history_vin", "vin", unique=True),
    )

    # Seed verified safe zones
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    weekday_hours = {"open": "09:00", "close": "17:00", "closed": False}
    office_hours = {
        "monday": weekday_hours,
        "tuesday": weekday_hours,
        "wednesday": weekday_hours,
        "thursday": weekday_hours,
        "friday": weekday_hours,
        "saturday": {"open": "10:00", "close": "16:00", "closed": False},
        "sunday": {"open": None, "close": None, "closed": True},
    }
    always_open = {
        day: {"open": "00:00", "close": "23:59", "closed": False}
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
    }

    default_safe_zones = [
        {
            "name": "Los Angeles Police Department - Downtown",
            "description": "Main downtown police station with 24/7 availability and secure parking",
            "address": "100 W 1st St, Los Angeles, CA 90012",
            "city": "Los Angeles",
            "state": "CA",
            "zip_code": "90012",
            "latitude": 34.0522,
            "longitude": -118.2437,
            "zone_type": "police_station",
            "phone": "(213) 486-6000",
            "operating_hours": always_open,
            "features": ["24_7", "parking", "security_cameras", "security_guard", "indoor", "restrooms"],
            "security_level": 5,
        },
        {
            "name": "Beverly Hills Public Library",
            "description": "Quiet, safe public library with good lighting and parking",
            "address": "444 N Rexford Dr, Beverly Hills, CA 90210",
            "city": "Beverly Hills",
            "state": "CA",
            "zip_code": "90210",
            "latitude": 34.0736,
            "longitude": -118.4004,
            "zone_type": "library",
            "phone": "(310) 288-2220",
            "operating_hours": office_hours,
            "features": ["parking", "security_cameras", "lighting", "indoor", "restrooms"],
            "security_level": 4,
        },
        {
            "name": "Westfield Century City",
            "description": "Busy shopping center with security patrols and a covered parking structure",
            "address": "10250 Santa Monica Blvd, Los Angeles, CA 90067",
            "city": "Los Angeles",
            "state": "CA",
            "zip_code": "90067",
            "latitude": 34.0584,
            "longitude": -118.4189,
            "zone_type": "mall",
            "phone": "(310) 277-3898",
            "operating_hours": office_hours,
            "features": ["parking", "security_cameras", "security_guard", "lighting", "restrooms"],
            "security_level": 4,
        },
    ]

    safe_zones = sa.table(
        "safe_zones",
        sa.column("id", sa.String),
        sa.column("name", sa.String),
        sa.column("description", sa.Text),
        sa.column("address", sa.String),
        sa.column("city", sa.String),
        sa.column("state", sa.String),
        sa.column("zip_code", sa.String),
        sa.column("latitude", sa.Float),
        sa.column("longitude", sa.Float),
        sa.column("zone_type", sa.String),
        sa.column("status", sa.String),
        sa.column("is_verified", sa.Boolean),
        sa.column("operating_hours", JSONB),
        sa.column("features", JSONB),
        sa.column("security_level", sa.Integer),
        sa.column("phone", sa.String),
        sa.column("created_at", sa.DateTime),
        sa.column("updated_at", sa.DateTime),
    )
    op.bulk_insert(
        safe_zones,
        [
            {
                **zone,
                "id": str(uuid.uuid4()),
                "status": "active",
                "is_verified": True,
                "created_at": now,
                "updated_at": now,
            }
            for zone in default_safe_zones
        ],
    )

    # Seed a theft report for the demo watch-list VIN
    op.execute(
        "INSERT INTO stolen_vehicles (id, vin, report_id, reported_date, reporting_agency, status, created_at) "
        f"VALUES ('{uuid.uuid4()}', '1HD1KBC10EB123457', 'LAPD-2024-0042', '{now.isoformat()}', "
        f"'Los Angeles Police Department', 'active', '{now.isoformat()}')"
    )


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    op.drop_table("vin_verification_history")
    op.drop_table("stolen_vehicles")
    op.drop_table("privacy_protection_log")
    op.drop_table("deal_agreements")
    op.drop_table("safe_zone_meetings")
    op.drop_table("safe_zone_reviews")
    op.drop_table("safe_zones")
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("favorites")
    op.drop_table("listings")
    op.drop_table("phone_verifications")
    op.drop_table("user_verifications")
    op.drop_table("user_profiles")
