"""AgriConnect Authentication Service.

Session tokens, reference tokens, one-time codes, and the per-request
authorization gate for the AgriConnect agricultural platform.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
