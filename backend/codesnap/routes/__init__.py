# Routes package init
"""
CodeSnap Backend — API Routes Package
=======================================

Route Inventory:
    - pastes.py:     POST   /api/pastes                  (create)
                     POST   /api/pastes/upload           (CSV/XML upload)
                     GET    /api/pastes                  (recent, ?limit&language)
                     GET    /api/pastes/{id}             (read, counts a view)
                     GET    /api/pastes/{id}/related     (same language, by views)
                     GET    /api/pastes/{id}/download    (attachment)
                     PUT    /api/pastes/{id}             (admin: replace content)
                     DELETE /api/pastes/{id}             (admin: delete)
    - admin.py:      POST   /api/admin/verify
    - languages.py:  GET    /api/languages
    - health.py:     GET    /health

Routes stay thin: extract inputs, call PasteService, shape the response.
Service graph assembly lives in dependencies.py.
"""
