# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
confsh core package.

Embeddable router-style configuration shell: nested contexts, abbreviated
keywords, direct or name-indirected handlers, and running-config dumps
that replay back into the same state.
"""
from .registry import Registry as Registry  # noqa: F401 (re-export)
from .session import Session as Session  # noqa: F401 (re-export)
