# Importing every model module registers its tables on Base.metadata
# (used by Alembic autogenerate and the test schema setup).
from . import user, brand, influencer, platform, campaign, mou, notification  # noqa: F401
