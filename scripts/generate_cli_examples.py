from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--size", "160", "--no-progress"]


@dataclass
class Example:
    name: str
    expression: str
    args: list[str]
    output: Path
    expect_failure: bool = False

    def full_args(self) -> list[str]:
        return [sys.executable, "plot.py", self.expression, *BASE_ARGS, *self.args, "--output", str(self.output)]


EXAMPLES: list[Example] = [
    Example(
        name="identity",
        expression="z",
        args=[],
        output=EXAMPLES_ROOT / "identity" / "identity.png",
    ),
    Example(
        name="range",
        expression="z^2 - 1",
        args=["--range", "2.5"],
        output=EXAMPLES_ROOT / "range" / "wide-window.png",
    ),
    Example(
        name="size",
        expression="z^3 - 1",
        args=["--size", "96"],
        output=EXAMPLES_ROOT / "size" / "small.png",
    ),
    Example(
        name="grid-mode",
        expression="z^2",
        args=["--mode", "2", "--range", "2"],
        output=EXAMPLES_ROOT / "grid-mode" / "grid-lines.png",
    ),
    Example(
        name="roots",
        expression="sqrt(z)",
        args=["--mode", "2", "--range", "3"],
        output=EXAMPLES_ROOT / "roots" / "principal-branch.png",
    ),
    Example(
        name="transcendental",
        expression="sin(z) / z",
        args=["--range", "6", "--on-error", "sentinel"],
        output=EXAMPLES_ROOT / "transcendental" / "sinc.png",
    ),
    Example(
        name="precision",
        expression="exp(1/z)",
        args=["--precision", "128", "--range", "0.5", "--on-error", "sentinel"],
        output=EXAMPLES_ROOT / "precision" / "essential-singularity.png",
    ),
    Example(
        name="variable",
        expression="(w - 1)/(w + 1)",
        args=["--variable", "w", "--range", "2", "--on-error", "sentinel"],
        output=EXAMPLES_ROOT / "variable" / "cayley.png",
    ),
    Example(
        name="workers",
        expression="gamma(z)",
        args=["--workers", "4", "--range", "4", "--on-error", "sentinel"],
        output=EXAMPLES_ROOT / "workers" / "gamma.png",
    ),
    Example(
        name="format",
        expression="log(z)",
        args=["--format", "webp", "--on-error", "sentinel"],
        output=EXAMPLES_ROOT / "format" / "log.webp",
    ),
    Example(
        name="abort",
        expression="1/z",
        args=["--size", "2"],
        output=EXAMPLES_ROOT / "abort" / "never-written.png",
        expect_failure=True,
    ),
    Example(
        name="verbose",
        expression="z^5 - z",
        args=["--verbose"],
        output=EXAMPLES_ROOT / "verbose" / "diagnostic.png",
    ),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _prepare(example: Example) -> None:
    _ensure_clean([example.output.parent])
    example.output.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example, returncode: int) -> None:
    if example.expect_failure:
        if returncode == 0:
            raise RuntimeError(f"Example {example.name} was expected to fail")
        if example.output.exists():
            raise RuntimeError(f"Example {example.name} failed but still wrote {example.output}")
        return
    if returncode != 0:
        raise RuntimeError(f"Example {example.name} failed with {returncode}")
    if not example.output.is_file():
        raise RuntimeError(f"Expected file {example.output} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        completed = subprocess.run(example.full_args(), check=False)
        _verify(example, completed.returncode)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
