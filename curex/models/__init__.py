# curex/models/__init__.py
from .user import User, UserRole, ApiToken
from .role import Role, Permission, RolePermission
from .pharmacy import Pharmacy
from .medication import Medication
from .inventory import InventoryTransaction
from .cart import Cart, CartItem
from .order import Order, OrderItem
from .prescription import Prescription, PrescriptionItem
from .favorite import Favorite
from .health_record import HealthRecord

__all__ = [
    "User",
    "UserRole",
    "ApiToken",
    "Role",
    "Permission",
    "RolePermission",
    "Pharmacy",
    "Medication",
    "InventoryTransaction",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Prescription",
    "PrescriptionItem",
    "Favorite",
    "HealthRecord",
]
