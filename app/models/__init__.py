"""Database models — re-exports all models.

Import from here:  from app.models import Boutique, Order, ...
Or from submodules: from app.models.orders import OrderItem
"""

from .base import Base  # noqa: F401

# Tenants
from .boutique import Boutique  # noqa: F401

# Collected data
from .stock import StockSnapshot  # noqa: F401
from .orders import Order, OrderItem  # noqa: F401

# Job tracking
from .sync import SyncJob  # noqa: F401
