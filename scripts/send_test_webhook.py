# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""Send a sample signed/authenticated delivery to a local webhook receiver.

Usage:
    python scripts/send_test_webhook.py [github|gitlab|azure]
"""

import base64
import hashlib
import hmac
import json
import os
import sys

import requests

API_BASE_URL = os.getenv('PRBRIDGE_URL', 'http://localhost:8000')


def print_header(text: str):
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60 + "\n")


def build_github_request():
    payload = {
        'action': 'opened',
        'pull_request': {
            'number': 42,
            'title': 'Automated PR: Add example file',
        },
    }
    body = json.dumps(payload, separators=(',', ':')).encode('utf-8')
    headers = {
        'Content-Type': 'application/json',
        'X-GitHub-Event': 'pull_request',
        'X-GitHub-Delivery': 'test-delivery-1',
    }

    secret = os.getenv('GITHUB_WEBHOOK_SECRET')
    if secret:
        signature_hash = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
        headers['X-Hub-Signature-256'] = f'sha256={signature_hash}'
        print(f"Signature: sha256={signature_hash[:32]}...")
    else:
        print("GITHUB_WEBHOOK_SECRET not set, sending unsigned")

    return '/api/webhook', body, headers


def build_gitlab_request():
    payload = {
        'object_kind': 'merge_request',
        'user': {'name': 'Test User'},
        'object_attributes': {
            'action': 'open',
            'iid': 7,
            'title': 'Automated MR: Update example file',
            'source_branch': 'feature/auto-mr-1',
            'target_branch': 'main',
            'state': 'opened',
        },
    }
    body = json.dumps(payload).encode('utf-8')
    headers = {
        'Content-Type': 'application/json',
        'X-Gitlab-Event': 'Merge Request Hook',
    }

    token = os.getenv('GITLAB_WEBHOOK_TOKEN')
    if token:
        headers['X-Gitlab-Token'] = token

    return '/api/gitlab-webhook', body, headers


def build_azure_request():
    payload = {
        'eventType': 'git.pullrequest.updated',
        'resourceVersion': '1.0',
        'resource': {
            'pullRequestId': 3,
            'title': 'Automated PR: Add script.js',
            'status': 'active',
            'repository': {'name': 'test-repo'},
        },
    }
    body = json.dumps(payload).encode('utf-8')
    headers = {'Content-Type': 'application/json'}

    username = os.getenv('AZURE_WEBHOOK_USERNAME')
    password = os.getenv('AZURE_WEBHOOK_PASSWORD')
    if username and password:
        credentials = base64.b64encode(f'{username}:{password}'.encode('utf-8')).decode('utf-8')
        headers['Authorization'] = f'Basic {credentials}'

    return '/api/azure-webhook', body, headers


BUILDERS = {
    'github': build_github_request,
    'gitlab': build_gitlab_request,
    'azure': build_azure_request,
}


def send_test_webhook(provider: str) -> int:
    """Send one sample delivery and report the response."""
    builder = BUILDERS.get(provider)
    if builder is None:
        print(f"Unknown provider '{provider}'. Choose one of: {', '.join(BUILDERS)}")
        return 2

    print_header(f"{provider} webhook test")
    path, body, headers = builder()
    url = f'{API_BASE_URL}{path}'

    print(f"Sending test webhook to {url}")
    print(f"Payload size: {len(body)} bytes")
    print()

    try:
        # Send the exact bytes that were signed
        response = requests.post(url, data=body, headers=headers, timeout=10)
    except requests.exceptions.ConnectionError:
        print("❌ Could not connect to application")
        print(f"Make sure prbridge is running on {API_BASE_URL}")
        return 1

    print(f"Status: {response.status_code}")
    print(f"Response: {response.text}")

    if response.status_code == 200:
        print()
        print("Webhook accepted!")
        print(f"Check the application logs for {provider}_webhook_received")
        return 0

    print()
    print("Webhook rejected")
    print("Check the logs for verification details")
    return 1


if __name__ == '__main__':
    sys.exit(send_test_webhook(sys.argv[1] if len(sys.argv) > 1 else 'github'))
