#!/usr/bin/env python3
"""
Prepare a portable/offline setup for callgraph-live.

What it does:
- (Optionally) pip install the project
- Copy or download the monitor client's scripts into callgraph_live/web/static/external/
- Write a manifest with a checksum per script

Usage:
  python scripts/prepare_portable.py --source https://example.org/monitor/external
  python scripts/prepare_portable.py --source ../monitor-client/external --skip-pip
"""
from __future__ import annotations

import argparse
import hashlib
import json
import shutil
import sys
import urllib.error
import urllib.request
from pathlib import Path
from subprocess import CalledProcessError, check_call

ROOT = Path(__file__).resolve().parent.parent

def sha256_of(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()

def fetch(url: str, dest: Path, timeout: float = 30.0) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_suffix(dest.suffix + ".tmp")
    req = urllib.request.Request(url, headers={"User-Agent": "callgraph-live/portable-prep"})
    with urllib.request.urlopen(req, timeout=timeout) as r, tmp.open("wb") as f:
        f.write(r.read())
    tmp.replace(dest)

def obtain(source: str, name: str, dest: Path) -> bool:
    if source.startswith(("http://", "https://")):
        url = f"{source.rstrip('/')}/{name}"
        print(f"[prepare] downloading {url} -> {dest}")
        try:
            fetch(url, dest)
        except urllib.error.HTTPError as e:
            print(f"[prepare] {url} -> HTTP {e.code}, skipped")
            return False
        except (urllib.error.URLError, OSError) as e:
            print(f"[prepare] {url} -> {e.__class__.__name__}: {e}, skipped")
            return False
        return True
    src = Path(source).expanduser().resolve() / name
    if not src.is_file():
        print(f"[prepare] {src} missing, skipped")
        return False
    print(f"[prepare] copying {src} -> {dest}")
    shutil.copyfile(src, dest)
    return True

def maybe_pip_install(root: Path) -> None:
    cmd = [sys.executable, "-m", "pip", "install", "-e", str(root)]
    print("[prepare] running:", " ".join(cmd))
    try:
        check_call(cmd)
    except CalledProcessError as e:
        print(f"[prepare] pip install failed: {e}")
        sys.exit(e.returncode)

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--source", required=True, help="URL or directory holding the client scripts")
    ap.add_argument("--skip-pip", action="store_true", help="skip 'pip install -e .'")
    ap.add_argument("--project-root", default=str(ROOT), help="project root (contains callgraph_live/)")
    args = ap.parse_args()

    root = Path(args.project_root).resolve()
    if not args.skip_pip:
        maybe_pip_install(root)

    # needs the installed package
    from callgraph_live.config import CLIENT_SCRIPTS

    external_dir = root / "callgraph_live" / "web" / "static" / "external"
    external_dir.mkdir(parents=True, exist_ok=True)

    manifest = {}
    for name in CLIENT_SCRIPTS:
        dest = external_dir / name
        if obtain(args.source, name, dest):
            manifest[name] = sha256_of(dest)

    (external_dir / "manifest.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    missing = [n for n in CLIENT_SCRIPTS if n not in manifest]
    print(f"[prepare] done: {len(manifest)} scripts")
    if missing:
        print(f"[prepare] WARNING: missing {', '.join(missing)}; the monitor page works without them")

if __name__ == "__main__":
    main()
