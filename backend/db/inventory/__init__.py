"""
Household inventory.

Models:
- InventoryItem (aggregate stock, optional per-location distribution)
- InventoryStockLocation (quantity per item per named location, ordered)
- InventoryActivity (append-only audit trail; outlives the item it describes)
"""
