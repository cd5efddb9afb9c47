from kitchen_stock.models.audit_log import AuditLog
from kitchen_stock.models.product import Product
from kitchen_stock.models.menu import Dish, Recipe
from kitchen_stock.models.consumption import DishSale, PersonalMeal, WasteRecord
from kitchen_stock.models.order import PurchaseOrder
from kitchen_stock.models.inventory import EditableInventory, InventorySnapshot, StockMovement
