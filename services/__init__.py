# Patch Services Module
# Clients for the external lighting-control service

from .lighting_service import LightingInventoryClient, get_inventory_client

__all__ = ['LightingInventoryClient', 'get_inventory_client']
