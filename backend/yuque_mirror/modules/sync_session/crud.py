"""CRUD operations for sync sessions using FastCRUD."""

from fastcrud import FastCRUD

from .models import SyncSession

sync_session_crud: FastCRUD = FastCRUD(SyncSession)
