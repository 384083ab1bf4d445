#!/usr/bin/env python3
"""Issue operator auth E2E sandbox runner.

Validates, against a throwaway SQLite store:
- /health and the admission webhook stay public when auth is enabled
- the resource API returns 401 without Authorization
- valid Authorization succeeds

Runs in its own process so the app reads auth configuration from the
environment before import-time initialization.

Run:
  python3 scripts/e2e_auth_sandbox.py
"""

from __future__ import annotations

import base64
import os
import sys
import tempfile
from pathlib import Path

# Ensure repository root is importable
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


def _basic(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def main() -> int:
    workdir = tempfile.mkdtemp(prefix="issue-operator-e2e-")
    os.environ["AUTH_ENABLED"] = "true"
    os.environ["AUTH_USERNAME"] = "e2e"
    os.environ["AUTH_PASSWORD"] = "secret"
    os.environ["DATABASE_URL"] = f"sqlite:///{workdir}/e2e.db"
    os.environ["ADMISSION_LOG_PATH"] = f"{workdir}/webhook.log"

    from fastapi.testclient import TestClient

    from issue_operator.main import app

    resources = "/api/namespaces/default/desiredissues/"

    with TestClient(app) as client:
        r = client.get("/health")
        if r.status_code != 200:
            print(f"[e2e-auth] /health expected 200, got {r.status_code}: {r.text}")
            return 2

        review = {
            "apiVersion": "admission.k8s.io/v1",
            "kind": "AdmissionReview",
            "request": {
                "uid": "e2e",
                "operation": "CREATE",
                "userInfo": {"username": "e2e-user"},
                "object": {"kind": "Namespace", "metadata": {"name": "e2e"}},
            },
        }
        r = client.post("/admission/namespaces", json=review)
        if r.status_code != 200 or not r.json()["response"]["allowed"]:
            print(f"[e2e-auth] admission expected allowed, got {r.status_code}: {r.text}")
            return 2

        r = client.get(resources)
        if r.status_code != 401:
            print(f"[e2e-auth] {resources} expected 401, got {r.status_code}: {r.text}")
            return 2

        r = client.get(resources, headers={"Authorization": _basic("e2e", "wrong")})
        if r.status_code != 401:
            print(f"[e2e-auth] wrong password expected 401, got {r.status_code}: {r.text}")
            return 2

        r = client.get(resources, headers={"Authorization": _basic("e2e", "secret")})
        if r.status_code != 200:
            print(f"[e2e-auth] valid auth expected 200, got {r.status_code}: {r.text}")
            return 2

    print("[e2e-auth] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
