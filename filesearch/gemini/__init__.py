"""
file-search Gemini module.

Wraps the google-genai SDK for stores, files, documents, queries and
long-running operations.
"""

from filesearch.gemini.client import GeminiClient, OperationStatus, UploadOptions

__all__ = ["GeminiClient", "OperationStatus", "UploadOptions"]
