# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Pull Request Services

Branch, commit and PR/MR creation workflow.
"""

from .pr_creator import PRCreator, ChangeRequestResult

__all__ = ["PRCreator", "ChangeRequestResult"]
