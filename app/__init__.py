"""Web application skeleton.

Routes live in ``app.api``, settings/logging/auth in ``app.core``, models in
``app.domain`` and code generators in ``app.generators``.
"""
