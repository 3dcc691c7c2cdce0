# Routes package init
"""
FormBridge Backend — API Routes Package
=========================================

Route Inventory:
    - submissions.py:  POST /submit-form          (store a form submission)
                       GET  /form-submissions     (paginated listing)
    - health.py:       GET  /health               (liveness + Firebase state)

Routes stay thin: read the request, call the service, return the model.
"""
