"""Domain-specific library modules.

Modules here import streamfall domain models and provide higher-level
logic (candidate matching). Pure utilities that don't depend on domain
models live in ``streamfall.utils`` instead.

Consumers should import directly from submodules::

    from streamfall.lib.matching import MatchScorer
"""
