"""
DTF quote backend.
Stores quotes and customer logos in Dropbox behind an OAuth 2.0 refresh-token session.
"""

__version__ = "1.0.0"
