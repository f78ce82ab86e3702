# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Terminal kanban board for a Notion task database."""

__version__ = "0.1.0"
