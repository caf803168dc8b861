"""Smoke test against a running server: default page, stateless analyze, page upload.

Start the API first (from backend/):
    uvicorn app.main:app --port 8000
Then:
    python scripts/smoke.py path/to/tree.jpg
"""

import sys
import time

import requests

BASE = "http://localhost:8000"
API = f"{BASE}/api/v1"


def check_default_page(session):
    print("=== Default page ===")
    r = session.get(f"{API}/page").json()
    print(f"  Phase: {r['phase']} | image: {r['image_source']} | blocks: {len(r['blocks'])}")
    print()


def check_analyze(path):
    print("=== Stateless analyze ===")
    with open(path, "rb") as f:
        t0 = time.time()
        r = requests.post(f"{API}/analyze", files={"image": (path, f, "image/jpeg")}, timeout=300)
    elapsed = time.time() - t0
    print(f"  Status: {r.status_code} | {elapsed:.1f}s")
    if r.ok:
        for block in r.json()["blocks"]:
            if block["kind"] == "heading":
                print(f"  # {block['text']}")
            elif block["kind"] == "field":
                print(f"    {block['label']}: {block['value']}")
    else:
        print(f"  Error: {r.json().get('detail')}")
    print()


def check_page_upload(session, path):
    print("=== Page upload + re-identify ===")
    with open(path, "rb") as f:
        r = session.post(f"{API}/page/upload", files={"image": (path, f, "image/jpeg")}, timeout=300).json()
    print(f"  Upload: phase={r['phase']} error={r['error']}")
    r = session.post(f"{API}/page/reidentify", timeout=300).json()
    print(f"  Re-identify: phase={r['phase']} error={r['error']}")
    print()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit(__doc__)
    image_path = sys.argv[1]
    s = requests.Session()
    check_default_page(s)
    check_analyze(image_path)
    check_page_upload(s, image_path)
