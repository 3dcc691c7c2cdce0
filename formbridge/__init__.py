"""
FormBridge Backend — Application Package Initializer
=====================================================

What: Marks the `formbridge` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is split into thin layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Validation, enrichment, paging
    ├─────────────────────────────────────┤
    │            Schemas (Data)           │  ← Pydantic API contracts
    ├─────────────────────────────────────┤
    │   Database (Firestore connection)   │  ← Lazy credential initialization
    └─────────────────────────────────────┘

    Routes handle status codes and request metadata, then hand the Firestore
    client and the payload to the service layer.
"""

__version__ = "1.0.0"
