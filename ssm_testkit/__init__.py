#!/usr/bin/env python3
# CUI // SP-CTI
"""ssm-testkit — AWS Systems Manager helpers for integration tests."""

__version__ = "0.1.0"
