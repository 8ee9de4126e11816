"""
Inventory with two stock counters per item.

- available_stock: units that can be sold right now
- reserved_stock: units set aside for pending orders

Models:
- InventoryItem (name, category, pricing options, both counters)

Store:
- SqlInventoryStore (guarded atomic counter updates + bulk upsert)
"""
