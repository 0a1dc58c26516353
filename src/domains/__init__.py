# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for AgriConnect authentication.

This package contains domain services that encapsulate business logic.

Domains:
    auth: Session tokens, reference tokens, one-time codes and login flows.
    user: Account lifecycle and admin moderation.
"""
