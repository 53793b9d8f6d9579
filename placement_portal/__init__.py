"""
Placement Portal
Placement management backend with an admin console client.

Architecture:
- MongoDB: students, faculty, companies, student applications
- FastAPI: REST API, every protected route guarded by verify_jwt
- client/: admin console that drives the bulk admin actions
"""

__version__ = "1.0.0"
