# SPDX-License-Identifier: LGPL-3.0-or-later
# vc2vc/cli/__init__.py
"""Command-line interface for vc2vc."""
