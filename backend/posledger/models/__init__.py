from .catalog import Product, BillOfMaterials, BomItem, MAX_BOM_ITEMS
from .inventory import InventoryStock, RawMaterialTransaction
from .transactions import PaymentTransaction, FinishedGoodTransaction, UsedProductDetail, Wastage
from .ledger import CodeSequence, ActivityLog, DailyBalance

__all__ = [
    'Product', 'BillOfMaterials', 'BomItem', 'MAX_BOM_ITEMS',
    'InventoryStock', 'RawMaterialTransaction',
    'PaymentTransaction', 'FinishedGoodTransaction', 'UsedProductDetail', 'Wastage',
    'CodeSequence', 'ActivityLog', 'DailyBalance',
]
