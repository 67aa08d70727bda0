"""Gold Inventory: jewelry items and customer orders kept on the device and
reconciled with a cloud row store."""

__version__ = "0.1.0"
