# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
gitgap CLI

Usage:
    gitgap check              # Check every open pull request once
    gitgap watch --interval 1200
    gitgap config set repository owner/repo
"""

from .main import cli, main

__all__ = ['cli', 'main']
