"""Tutorix Auth Core.

Authentication and session lifecycle for the Tutorix learning platform:
credential issuance and rotation, session activity tracking, one-time
passcodes and password recovery.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
