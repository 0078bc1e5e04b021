"""
The fixed document manifest.

Each entry names one specification document, where it comes from and where
it lands inside the destination directory. The manifest lives in code on
purpose; it is the contract with everyone reading the downloaded archive.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import ManifestError
from .utils.validators import get_validator, validate_destination, validate_pattern


class SourceKind(str, enum.Enum):
    URL = "url"
    GITHUB_RELEASE = "github_release"
    HTML_BOOK = "html_book"
    GIT_BUILD = "git_build"


DEFAULT_BUILD_COMMAND: Tuple[str, ...] = ("make", "pdf")


@dataclass(frozen=True)
class ManifestEntry:
    name: str
    kind: SourceKind
    source: str                      # URL, or owner/repo for GitHub releases
    destination: str = ""            # relative to the output directory; unused for releases
    pattern: Optional[str] = None    # release asset glob
    build_command: Tuple[str, ...] = DEFAULT_BUILD_COMMAND
    artifact: str = "abi.pdf"        # file the build leaves in the checkout
    description: str = ""

    def validate(self) -> None:
        """Raise ManifestError if the entry cannot be fetched as declared."""
        if not self.name or not self.name.strip():
            raise ManifestError("Manifest entry needs a name")

        if self.kind is SourceKind.GITHUB_RELEASE:
            ok, err = get_validator().validate_repo(self.source)
            if not ok:
                raise ManifestError(f"{self.name}: {err}")
            ok, err = validate_pattern(self.pattern or "")
            if not ok:
                raise ManifestError(f"{self.name}: {err}")
            return

        ok, _, err = get_validator().validate_and_normalize(self.source)
        if not ok:
            raise ManifestError(f"{self.name}: {err}")
        ok, err = validate_destination(self.destination)
        if not ok:
            raise ManifestError(f"{self.name}: {err}")
        if self.kind is SourceKind.GIT_BUILD:
            if not self.build_command:
                raise ManifestError(f"{self.name}: build command cannot be empty")
            ok, err = validate_destination(self.artifact)
            if not ok:
                raise ManifestError(f"{self.name}: artifact {err}")

    @property
    def target(self) -> str:
        """Human readable destination (file name or asset glob)."""
        if self.kind is SourceKind.GITHUB_RELEASE:
            return self.pattern or ""
        return self.destination


@dataclass
class Manifest:
    entries: List[ManifestEntry] = field(default_factory=list)

    def __post_init__(self):
        seen = set()
        for entry in self.entries:
            entry.validate()
            if entry.name in seen:
                raise ManifestError(f"Duplicate manifest entry name: {entry.name}")
            seen.add(entry.name)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def names(self) -> List[str]:
        return [e.name for e in self.entries]

    def get(self, name: str) -> ManifestEntry:
        for entry in self.entries:
            if entry.name == name:
                return entry
        raise ManifestError(f"Unknown manifest entry: {name}")

    def select(self, names: Optional[Iterable[str]] = None) -> List[ManifestEntry]:
        """
        Return the named entries in manifest order (all entries when
        ``names`` is empty). Unknown names raise ManifestError.
        """
        if not names:
            return list(self.entries)
        wanted = list(dict.fromkeys(names))
        unknown = [n for n in wanted if n not in self.names()]
        if unknown:
            raise ManifestError(f"Unknown manifest entries: {', '.join(unknown)}")
        return [e for e in self.entries if e.name in wanted]


UCLIBC_DOCS = "https://uclibc.org/docs"


def _uclibc(name: str, remote: str, destination: str, description: str) -> ManifestEntry:
    return ManifestEntry(name=name, kind=SourceKind.URL, source=f"{UCLIBC_DOCS}/{remote}",
                         destination=destination, description=description)


DEFAULT_ENTRIES: Sequence[ManifestEntry] = (
    ManifestEntry(
        name="gabi",
        kind=SourceKind.HTML_BOOK,
        source="https://www.sco.com/developers/gabi/latest/contents.html",
        destination="gabi.pdf",
        description="System V ABI, generic ELF (gABI)",
    ),
    ManifestEntry(
        name="elf",
        kind=SourceKind.URL,
        source="https://refspecs.linuxfoundation.org/elf/elf.pdf",
        destination="elf.pdf",
        description="TIS Executable and Linking Format 1.2",
    ),
    ManifestEntry(
        name="arm",
        kind=SourceKind.GITHUB_RELEASE,
        source="ARM-software/abi-aa",
        pattern="*elf*.pdf",
        description="ARM ELF for the Arm architecture (AArch32/AArch64)",
    ),
    _uclibc("m68k", "psABI-m68k.pdf", "m68k-abi.pdf", "Motorola 68000 psABI"),
    _uclibc("mips", "psABI-mips.pdf", "mips.pdf", "MIPS psABI"),
    _uclibc("pa-risc", "psABI-pa-risc.pdf", "pa-risc-abi.pdf", "PA-RISC psABI"),
    _uclibc("ppc", "psABI-ppc.pdf", "ppc-abi.pdf", "PowerPC psABI"),
    _uclibc("ppc-tls", "tls-ppc.pdf", "ppc-tls.pdf", "PowerPC TLS"),
    _uclibc("ppc64", "psABI-ppc64.pdf", "ppc64-abi.pdf", "PowerPC64 psABI"),
    _uclibc("ppc64-tls", "tls-ppc64.pdf", "ppc64-tls.pdf", "PowerPC64 TLS"),
    _uclibc("s390", "psABI-s390.pdf", "s390-abi.pdf", "S/390 psABI"),
    _uclibc("s390x", "psABI-s390x.pdf", "s390x-abi.pdf", "zSeries (S/390x) psABI"),
    _uclibc("sh", "psABI-sh.txt", "sh-abi.txt", "SuperH psABI (plain text)"),
    _uclibc("sparc", "psABI-sparc.pdf", "sparc-abi.pdf", "SPARC psABI"),
    ManifestEntry(
        name="riscv",
        kind=SourceKind.GITHUB_RELEASE,
        source="riscv-non-isa/riscv-elf-psabi-doc",
        pattern="*.pdf",
        description="RISC-V ELF psABI",
    ),
    ManifestEntry(
        name="x86-64",
        kind=SourceKind.URL,
        source="https://gitlab.com/x86-psABIs/x86-64-ABI/-/jobs/artifacts/master/raw/x86-64-ABI/abi.pdf?job=build",
        destination="x86-64-abi.pdf",
        description="x86-64 psABI (CI build artifact)",
    ),
    ManifestEntry(
        name="i386",
        kind=SourceKind.GIT_BUILD,
        source="https://gitlab.com/x86-psABIs/i386-ABI",
        destination="i386-abi.pdf",
        build_command=DEFAULT_BUILD_COMMAND,
        artifact="abi.pdf",
        description="i386 psABI (built from source)",
    ),
)


DEFAULT_MANIFEST = Manifest(list(DEFAULT_ENTRIES))
