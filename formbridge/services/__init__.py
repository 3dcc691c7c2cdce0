# Services package init
"""
FormBridge Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and Firestore (persistence).

Service Inventory:
    - SubmissionService: intake validation, document enrichment, paginated reads

Services never build HTTP responses and never own the Firestore client; the
route passes the client in on every call.
"""
