# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
prbridge

Automates pull/merge request creation and webhook registration across
GitHub, GitLab and Azure DevOps, and receives their webhook callbacks.
"""

__version__ = "0.1.0"
