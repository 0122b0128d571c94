# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Webhook Services

Webhook registration and inbound delivery verification.
"""

from .webhook_manager import WebhookManager

__all__ = ["WebhookManager"]
