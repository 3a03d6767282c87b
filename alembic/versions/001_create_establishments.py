"""create establishments with PostGIS location

Revision ID: 001_create_establishments
Revises:
Create Date: 2026-10-16 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text


# revision identifiers, used by Alembic.
revision: str = '001_create_establishments'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # 1. PostGIS
    op.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))

    # 2. Table; location is derived from latitude/longitude
    op.execute(text("""
        CREATE TABLE establishments (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            name varchar(255) NOT NULL,
            description text,
            city varchar(100) NOT NULL,
            address text,
            phone varchar(50),
            website text,
            latitude double precision NOT NULL,
            longitude double precision NOT NULL,
            location geography(Point, 4326)
                GENERATED ALWAYS AS (ST_SetSRID(ST_MakePoint(longitude, latitude), 4326)::geography) STORED,
            categories varchar(50)[] NOT NULL DEFAULT '{}',
            cuisines varchar(50)[] NOT NULL DEFAULT '{}',
            price_range varchar(3),
            features varchar(50)[] NOT NULL DEFAULT '{}',
            working_hours jsonb NOT NULL DEFAULT '{}',
            is_24_hours boolean NOT NULL DEFAULT false,
            average_rating numeric(3, 2),
            review_count integer NOT NULL DEFAULT 0,
            subscription_tier varchar(20) NOT NULL DEFAULT 'free',
            subscription_expires_at timestamptz,
            status varchar(20) NOT NULL DEFAULT 'draft',
            primary_image_url text,
            created_at timestamptz NOT NULL DEFAULT now(),
            updated_at timestamptz NOT NULL DEFAULT now(),
            published_at timestamptz,
            CONSTRAINT ck_establishments_latitude CHECK (latitude >= -90 AND latitude <= 90),
            CONSTRAINT ck_establishments_longitude CHECK (longitude >= -180 AND longitude <= 180),
            CONSTRAINT ck_establishments_price_range CHECK (price_range IS NULL OR price_range IN ('$', '$$', '$$$')),
            CONSTRAINT ck_establishments_subscription_tier
                CHECK (subscription_tier IN ('free', 'basic', 'standard', 'premium')),
            CONSTRAINT ck_establishments_status
                CHECK (status IN ('draft', 'pending', 'active', 'rejected', 'suspended', 'archived'))
        )
    """))

    # 3. Indexes: geography for radius search, geometry expression for envelopes
    op.execute(text("CREATE INDEX ix_establishments_location ON establishments USING gist (location)"))
    op.execute(text(
        "CREATE INDEX ix_establishments_location_geom ON establishments USING gist ((location::geometry))"
    ))
    op.execute(text("CREATE INDEX ix_establishments_categories ON establishments USING gin (categories)"))
    op.execute(text("CREATE INDEX ix_establishments_cuisines ON establishments USING gin (cuisines)"))
    op.execute(text("CREATE INDEX ix_establishments_features ON establishments USING gin (features)"))
    op.execute(text("CREATE INDEX ix_establishments_status ON establishments (status)"))


def downgrade() -> None:
    """Downgrade schema."""
    op.execute(text("DROP TABLE IF EXISTS establishments"))
