"""
Dockerfile parsing and image contract checks.

The image contract is what the cluster manifests rely on: the binary lives at
``/usr/local/bin/myapp``, the container listens on 3000 and runs ``myapp``
with no arguments. The build stage must also prepare its toolchain before
compiling, e.g. add the musl target before ``cargo install``.
"""
import json
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple, Union

from deployment.errors import DockerfileParseError


@dataclass
class Instruction:
    keyword: str
    args: str
    lineno: int


@dataclass
class Stage:
    base: str
    name: Optional[str] = None
    platform: Optional[str] = None
    instructions: List[Instruction] = field(default_factory=list)

    def find(self, keyword: str) -> List[Instruction]:
        return [i for i in self.instructions if i.keyword == keyword]


@dataclass(frozen=True)
class ImageContract:
    port: int = 3000
    binary_path: str = "/usr/local/bin/myapp"
    command: Tuple[str, ...] = ("myapp",)
    platform: Optional[str] = "linux/amd64"
    # (before, after) regex pairs over RUN instructions of the build stages
    build_order: Tuple[Tuple[str, str], ...] = ()


RUST_MUSL_CONTRACT = ImageContract(
    build_order=(
        (r"rustup\s+target\s+add\s+x86_64-unknown-linux-musl",
         r"cargo\s+install\s+.*--target\s+x86_64-unknown-linux-musl"),
    ),
)

PYTHON_CONTRACT = ImageContract(
    build_order=(
        (r"pip\s+install\s+.*--upgrade\s+pip", r"pip\s+install\s+.*--prefix"),
    ),
)

CONTRACTS = {
    "python": PYTHON_CONTRACT,
    "rust": RUST_MUSL_CONTRACT,
}


def _logical_lines(text: str):
    """Yield (lineno, line) with comments dropped and continuations joined."""
    buffer = []
    start = None
    for lineno, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if stripped.startswith("#"):
            continue
        if not stripped:
            continue
        if start is None:
            start = lineno
        if stripped.endswith("\\"):
            buffer.append(stripped[:-1].strip())
            continue
        buffer.append(stripped)
        yield start, " ".join(part for part in buffer if part)
        buffer = []
        start = None
    if buffer:
        yield start, " ".join(part for part in buffer if part)


def _parse_from(args: str, lineno: int) -> Stage:
    tokens = args.split()
    platform = None
    positional = []
    for token in tokens:
        if token.startswith("--platform="):
            platform = token.split("=", 1)[1]
        elif token.startswith("--"):
            continue
        else:
            positional.append(token)
    if not positional:
        raise DockerfileParseError(f"line {lineno}: FROM without an image")
    name = None
    if len(positional) >= 3 and positional[1].upper() == "AS":
        name = positional[2]
    return Stage(base=positional[0], name=name, platform=platform)


def parse_dockerfile(text: str) -> List[Stage]:
    """Split a Dockerfile into build stages.

    Raises:
        DockerfileParseError: an instruction other than ARG precedes the first FROM
    """
    stages: List[Stage] = []
    for lineno, line in _logical_lines(text):
        keyword, _, args = line.partition(" ")
        keyword = keyword.upper()
        args = args.strip()
        if keyword == "FROM":
            stages.append(_parse_from(args, lineno))
            continue
        if not stages:
            if keyword == "ARG":
                continue
            raise DockerfileParseError(f"line {lineno}: {keyword} before the first FROM")
        stages[-1].instructions.append(Instruction(keyword=keyword, args=args, lineno=lineno))
    return stages


def load_dockerfile(path: Union[str, Path]) -> List[Stage]:
    return parse_dockerfile(Path(path).read_text(encoding="utf-8"))


def _exec_or_shell(instruction: Instruction) -> Tuple[str, ...]:
    args = instruction.args
    if args.startswith("["):
        try:
            return tuple(json.loads(args))
        except json.JSONDecodeError:
            pass
    try:
        return tuple(shlex.split(args))
    except ValueError as e:
        raise DockerfileParseError(
            f"line {instruction.lineno}: cannot split {instruction.keyword} {args!r}: {e}"
        ) from e


def _copy_destination(args: str) -> Optional[str]:
    if args.startswith("["):
        try:
            parts = json.loads(args)
        except json.JSONDecodeError:
            parts = args.split()
    else:
        parts = [token for token in args.split() if not token.startswith("--")]
    if len(parts) < 2:
        return None
    return parts[-1]


def _provides(destination: str, binary_path: str) -> bool:
    target = PurePosixPath(binary_path)
    dest = PurePosixPath(destination)
    return dest == target or dest in target.parents


def _exposed_ports(stage: Stage) -> List[int]:
    ports = []
    for instruction in stage.find("EXPOSE"):
        for token in instruction.args.split():
            port = token.split("/", 1)[0]
            if port.isdigit():
                ports.append(int(port))
    return ports


def _effective_command(stage: Stage) -> Optional[Tuple[str, ...]]:
    entrypoint = stage.find("ENTRYPOINT")
    cmd = stage.find("CMD")
    if not entrypoint and not cmd:
        return None
    command: Tuple[str, ...] = ()
    if entrypoint:
        command += _exec_or_shell(entrypoint[-1])
    if cmd:
        command += _exec_or_shell(cmd[-1])
    return command


def _first_run_index(stage: Stage, pattern: str) -> Optional[int]:
    regex = re.compile(pattern)
    for index, instruction in enumerate(stage.instructions):
        if instruction.keyword == "RUN" and regex.search(instruction.args):
            return index
    return None


def _check_build_order(build_stages: List[Stage], before: str, after: str) -> Optional[str]:
    saw_before = saw_after = False
    for stage in build_stages:
        before_index = _first_run_index(stage, before)
        after_index = _first_run_index(stage, after)
        saw_before = saw_before or before_index is not None
        saw_after = saw_after or after_index is not None
        if before_index is not None and after_index is not None and before_index < after_index:
            return None
    if not saw_before:
        return f"build stage never runs a command matching '{before}'"
    if not saw_after:
        return f"build stage never runs a command matching '{after}'"
    return f"'{before}' must run before '{after}' in the build stage"


def check_contract(stages: List[Stage], contract: ImageContract = PYTHON_CONTRACT) -> List[str]:
    """Return the ways ``stages`` break ``contract``; empty when compliant.

    Raises:
        DockerfileParseError: the runtime CMD or ENTRYPOINT cannot be tokenized
    """
    if not stages:
        return ["Dockerfile has no FROM instruction"]

    violations = []

    if contract.platform:
        for stage in stages:
            if stage.platform != contract.platform:
                violations.append(
                    f"FROM {stage.base} must pin --platform={contract.platform} "
                    f"(found {stage.platform or 'none'})"
                )

    build_stages = stages[:-1] or stages
    for before, after in contract.build_order:
        violation = _check_build_order(build_stages, before, after)
        if violation:
            violations.append(violation)

    runtime = stages[-1]
    copies = []
    for instruction in runtime.instructions:
        if instruction.keyword not in ("COPY", "ADD"):
            continue
        destination = _copy_destination(instruction.args)
        if destination is not None and _provides(destination, contract.binary_path):
            copies.append(instruction)
    if len(copies) != 1:
        violations.append(
            f"runtime stage must copy exactly one artifact providing {contract.binary_path} "
            f"(found {len(copies)})"
        )

    if contract.port not in _exposed_ports(runtime):
        violations.append(f"runtime stage must EXPOSE {contract.port}")

    command = _effective_command(runtime)
    if command != tuple(contract.command):
        expected = json.dumps(list(contract.command))
        found = json.dumps(list(command)) if command is not None else "none"
        violations.append(f"runtime stage must run CMD {expected} (found {found})")

    return violations
