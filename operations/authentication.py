"""
Token authentication for the API.

Kept apart from the views so Django REST framework can import the
configured authentication classes during start-up without pulling in
view modules (and their models) too early.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication under the ``Token`` keyword.

    Clients may also send a simplejwt ``Bearer`` access token; that is
    handled by the second class configured in ``REST_FRAMEWORK``.
    """

    keyword = 'Token'
