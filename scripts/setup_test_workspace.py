"""Set up a sample project at /tmp/srcpack-test for manual testing."""

import argparse
import shutil
from pathlib import Path

WORKSPACE_ROOT = Path("/tmp/srcpack-test")
FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"


def create_source_files(project: Path) -> None:
    """Create a small plugin-style project wired together by pack: lines."""
    (project / "plugins").mkdir(parents=True)
    (project / "doc").mkdir(parents=True)

    (project / "main.py").write_text("""\
#!/usr/bin/env python3
# title: sample tool
# version: 0.1
# license: MIT
# pack: util.py, plugins/*.py=lib/plugins/, doc/{intro,usage}.txt, README=README.txt
#
# Sample entry point for srcpack.

print("hello")
""")

    (project / "util.py").write_text("""\
\"\"\"Helpers.

pack: util.py=lib/util.py
\"\"\"
""")

    (project / "plugins" / "alpha.py").write_text("# pack: ../config.ini\n")
    (project / "plugins" / "beta.py").write_text("BETA = 1\n")
    (project / "config.ini").write_text("; pack: config.ini=etc/sample.ini\n[sample]\n")
    (project / "doc" / "intro.txt").write_text("Intro\n")
    (project / "doc" / "usage.txt").write_text("Usage\n")
    (project / "README").write_text("Sample project\n")

    # excluded by itself
    (project / "scratch.py").write_text("# pack: scratch.py=\n")


def setup_workspace(with_config: bool = True) -> Path:
    """Set up the sample project.

    Args:
        with_config: Copy the fixture srcpack.yaml next to the project

    Returns:
        Path to the project directory
    """
    if WORKSPACE_ROOT.exists():
        shutil.rmtree(WORKSPACE_ROOT)

    project = WORKSPACE_ROOT / "project"
    create_source_files(project)

    if with_config:
        fixture_path = FIXTURES_DIR / "srcpack.yaml"
        if not fixture_path.exists():
            msg = f"Fixture not found: {fixture_path}"
            raise FileNotFoundError(msg)
        # the fixture's chdir points at ./project and its entry at main.sh
        text = fixture_path.read_text().replace("entry: main.sh", "entry: main.py")
        (WORKSPACE_ROOT / "srcpack.yaml").write_text(text)

    return project


def main() -> None:
    parser = argparse.ArgumentParser(description="Set up srcpack test workspace")
    parser.add_argument(
        "--no-config",
        action="store_true",
        help="Do not write srcpack.yaml",
    )
    args = parser.parse_args()

    project = setup_workspace(with_config=not args.no_config)

    print(f"Test workspace created at: {WORKSPACE_ROOT}")
    print(f"Project directory: {project}")
    print()
    print("Try:")
    print(f"  cd {WORKSPACE_ROOT} && srcpack tree")
    print(f"  cd {WORKSPACE_ROOT} && srcpack build --clean")


if __name__ == "__main__":
    main()
