# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Integrations package."""
from src.integrations.postgrest import PostgrestDirectory

__all__ = [
    "PostgrestDirectory",
]
