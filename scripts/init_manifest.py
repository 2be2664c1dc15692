"""Generate a default srcpack.yaml."""

from pathlib import Path

from srcpack.materializer import EscapePolicy
from srcpack.workspace import CONFIG_NAME, DEFAULT_EXCLUDE, PackConfig, save_config


def create_example_config() -> PackConfig:
    """Create an example config with common defaults."""
    return PackConfig(
        entry="main.py",
        prefix="usr/share/example",
        staging=Path("build/staging"),
        escape=EscapePolicy.SKIP,
        exclude=[*DEFAULT_EXCLUDE, "*.orig"],
        fix_permissions=True,
    )


def main() -> None:
    output = Path(CONFIG_NAME)
    save_config(create_example_config(), output)
    print(f"Generated {output}")


if __name__ == "__main__":
    main()
