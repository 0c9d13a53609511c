"""
Upload constants shared by the API layer.
"""

# extension -> stored file_type
SUPPORTED_FILE_TYPES = {
    ".pdf": "pdf",
    ".docx": "docx",
    ".xlsx": "xlsx",
    ".txt": "txt",
}

# Hard per-file cap, applied before any plan limit
MAX_FILE_SIZE_MB = 50

DOCUMENT_LIST_MAX_PAGE = 200
