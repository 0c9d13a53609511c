"""
Bearer token scheme shared across the app. Tokens come from the auth service.
"""
from fastapi.security import HTTPBearer

bearer_scheme = HTTPBearer(auto_error=True)
