"""Fill CCNS fixtures from the pytest suite, optionally chaining into vectors.

    python tools/fill.py                     # fixtures/ only
    python tools/fill.py --vectors vectors   # fixtures/ then vectors/
    python tools/fill.py -k registrar        # a subset of the suite
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def _pytest_cmd(output: Path, select: str | None) -> list[str]:
    cmd = [sys.executable, "-m", "pytest", str(ROOT / "tests"), "-q", "--output", str(output)]
    if select:
        cmd += ["-k", select]
    return cmd


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate CCNS fixtures")
    parser.add_argument("--output", default=str(ROOT / "fixtures"), help="Fixture directory")
    parser.add_argument("-k", dest="select", default=None, help="pytest -k expression")
    parser.add_argument(
        "--vectors",
        default=None,
        help="Also convert the fixtures into YAML vectors in this directory",
    )
    args = parser.parse_args()

    output = Path(args.output).resolve()
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), str(ROOT)])

    cmd = _pytest_cmd(output, args.select)
    print("Filling:", " ".join(cmd))
    code = subprocess.call(cmd, env=env, cwd=str(ROOT))
    if code != 0 or not args.vectors:
        return code

    convert = [
        sys.executable,
        str(ROOT / "tools" / "fixtures_to_vectors.py"),
        "--fixtures",
        str(output),
        "--vectors",
        str(Path(args.vectors).resolve()),
    ]
    print("Converting:", " ".join(convert))
    return subprocess.call(convert, env=env, cwd=str(ROOT))


if __name__ == "__main__":
    raise SystemExit(main())
