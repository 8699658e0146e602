"""CRUD operations for sync history using FastCRUD."""

from fastcrud import FastCRUD

from .models import SyncHistory

sync_history_crud: FastCRUD = FastCRUD(SyncHistory)
