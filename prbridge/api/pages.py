# Copyright (c) 2025 Parth Sinha and Shine Gupta. All rights reserved.
# prbridge - Automated pull requests and webhook handling for GitHub, GitLab and Azure DevOps.

"""
Demonstration page for the GitHub PR workflow.
"""

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["Pages"])

TEST_PR_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>GitHub PR Creator</title>
  <style>
    body { font-family: system-ui, sans-serif; max-width: 42rem; margin: 3rem auto; padding: 0 1rem; }
    button { width: 100%; padding: 0.75rem; font-weight: 600; color: #fff; background: #2563eb; border: 0; border-radius: 0.5rem; cursor: pointer; }
    button:disabled { background: #9ca3af; cursor: default; }
    .panel { margin-top: 1.5rem; padding: 1.25rem; border-radius: 0.5rem; }
    .instructions { background: #f3f4f6; }
    .success { background: #f0fdf4; border: 1px solid #bbf7d0; }
    .error { background: #fef2f2; border: 1px solid #fecaca; color: #b91c1c; }
    .hidden { display: none; }
    code { background: #e5e7eb; padding: 0 0.25rem; border-radius: 0.25rem; }
  </style>
</head>
<body>
  <h1>GitHub PR Creator</h1>

  <div class="panel instructions">
    <h2>Instructions</h2>
    <ol>
      <li>Set <code>GITHUB_WORKFLOW__OWNER</code> and <code>GITHUB_WORKFLOW__REPO</code> in the environment</li>
      <li>Ensure your GitHub App has the correct permissions</li>
      <li>Click the button below to create a test PR</li>
    </ol>
  </div>

  <div class="panel">
    <button id="create-pr">Create Pull Request</button>
  </div>

  <div id="result" class="panel success hidden">
    <h3>Pull Request Created Successfully!</h3>
    <p><strong>PR Number:</strong> #<span id="pr-number"></span></p>
    <p><strong>Title:</strong> <span id="pr-title"></span></p>
    <p><strong>Branch:</strong> <span id="pr-branch"></span></p>
    <p><strong>URL:</strong> <a id="pr-url" target="_blank" rel="noopener noreferrer"></a></p>
  </div>

  <div id="error" class="panel error hidden">
    <h3>Error</h3>
    <p id="error-message"></p>
  </div>

  <script>
    const button = document.getElementById("create-pr");
    const resultPanel = document.getElementById("result");
    const errorPanel = document.getElementById("error");

    button.addEventListener("click", async () => {
      button.disabled = true;
      button.textContent = "Creating PR...";
      resultPanel.classList.add("hidden");
      errorPanel.classList.add("hidden");

      try {
        const response = await fetch("/api/create-pr", { method: "POST" });
        const data = await response.json();

        if (response.ok) {
          const pr = data.pullRequest;
          document.getElementById("pr-number").textContent = pr.number;
          document.getElementById("pr-title").textContent = pr.title;
          document.getElementById("pr-branch").textContent = pr.branch;
          const link = document.getElementById("pr-url");
          link.href = pr.url;
          link.textContent = pr.url;
          resultPanel.classList.remove("hidden");
        } else {
          document.getElementById("error-message").textContent = data.error || "Failed to create PR";
          errorPanel.classList.remove("hidden");
        }
      } catch (err) {
        document.getElementById("error-message").textContent = err.message || "An error occurred";
        errorPanel.classList.remove("hidden");
      } finally {
        button.disabled = false;
        button.textContent = "Create Pull Request";
      }
    });
  </script>
</body>
</html>
"""


@router.get(
    "/test-pr",
    response_class=HTMLResponse,
    summary="PR workflow demo page",
    include_in_schema=False,
)
async def test_pr_page() -> HTMLResponse:
    return HTMLResponse(content=TEST_PR_PAGE)
