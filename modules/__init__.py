# modules/__init__.py

from .delete_sync import main as delete_sync_main

MODULES = {
    "delete_sync": delete_sync_main,
}
