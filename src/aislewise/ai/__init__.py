"""Collaborator interfaces and OpenAI adapters."""
from .collaborators import BulkParser, Categorizer, MemorySecretStore, SecretStore, StoreScanner
from .errors import APIError, GPTError, ValidationError
from .models import AutoCategorizeResult, BulkImportResult, GPTConfig
from .call_gpt import GPTBulkParser, GPTCategorizer, GPTStoreScanner, resolve_categorization

__all__ = [
    'BulkParser', 'Categorizer', 'MemorySecretStore', 'SecretStore', 'StoreScanner',
    'APIError', 'GPTError', 'ValidationError',
    'AutoCategorizeResult', 'BulkImportResult', 'GPTConfig',
    'GPTBulkParser', 'GPTCategorizer', 'GPTStoreScanner', 'resolve_categorization',
]
