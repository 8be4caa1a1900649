"""History layer — lifecycle events and per-subject, isolated stores.

Submodules are imported directly (``recount.history.store``); this package
stays empty so that the view layer can import ``recount.history.events``
without pulling in the store.
"""
