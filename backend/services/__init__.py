"""
Services module for storage access and signed link handling
"""

from .link_reissuer import LinkReissuer, ReissueOutcome
from .supabase_storage import StorageSignError, SupabaseStorageService

__all__ = ["LinkReissuer", "ReissueOutcome", "StorageSignError", "SupabaseStorageService"]
