"""
specfetch: ABI & ELF specification downloader

Fetches a fixed set of publicly hosted ABI/ELF specification documents
(System V gABI, ARM, MIPS, PowerPC, RISC-V, x86, ...) into one directory,
mirroring and converting the HTML-only ones to PDF along the way.
"""

__version__ = "1.0.0"
__description__ = "ABI & ELF specification downloader"
