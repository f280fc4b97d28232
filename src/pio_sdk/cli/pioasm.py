"""
pioasm - PIO Assembler Command-Line Interface
=============================================

This module implements the command-line interface for the PIO assembler.

Usage Examples
--------------
Print the instruction words of every program in a file:
    $ pioasm ws2812.pio

Write JSON with origin, wrap, side-set and public defines:
    $ pioasm ws2812.pio -f json -o ws2812.json

Assemble one program from a file:
    $ pioasm uart.pio -p uart_rx

Assemble a file without .program directives:
    $ pioasm --single blink.pio

Keep going after a failing program and report every error:
    $ pioasm --keep-going all.pio
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from pio_sdk import __version__
from pio_sdk.assembler import Assembler, ProgramWithDefines
from pio_sdk.cli.errors import ExitCode, handle_cli_exception
from pio_sdk.errors import ProgramErrors


# =============================================================================
# Output Formats
# =============================================================================

def format_hex(programs: dict[str, ProgramWithDefines]) -> str:
    """One 4-digit hex word per line, with a '; name' header per program
    when there is more than one."""
    lines = []
    for name, result in programs.items():
        if len(programs) > 1:
            lines.append(f"; {name}")
        lines.extend(result.program.to_hex())
    return "".join(f"{line}\n" for line in lines)


def program_to_dict(result: ProgramWithDefines) -> dict:
    """JSON-ready description of an assembled program."""
    program = result.program
    return {
        "code": list(program.code),
        "origin": program.origin,
        "wrap": {"source": program.wrap.source, "target": program.wrap.target},
        "side_set": {
            "width": program.side_set.width,
            "optional": program.side_set.opt,
            "pindirs": program.side_set.pindirs,
        },
        "version": program.version.value,
        "public_defines": result.public_defines,
    }


def format_json(programs: dict[str, ProgramWithDefines]) -> str:
    data = {name: program_to_dict(result) for name, result in programs.items()}
    return json.dumps(data, indent=2) + "\n"


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: standard output)",
)
@click.option(
    "-f", "--format", "output_format",
    type=click.Choice(["hex", "json"], case_sensitive=False),
    default="hex",
    show_default=True,
    help="Output format",
)
@click.option(
    "-p", "--program", "program_name",
    help="Only output the named program",
)
@click.option(
    "--single",
    is_flag=True,
    help="Treat the whole file as one program without .program",
)
@click.option(
    "--keep-going",
    is_flag=True,
    help="Assemble every program even if one fails, then report all errors",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="pioasm")
def main(
    input_file: Path,
    output: Optional[Path],
    output_format: str,
    program_name: Optional[str],
    single: bool,
    keep_going: bool,
    verbose: bool,
) -> None:
    """
    Assemble PIO source code for the RP2040/RP2350.

    INPUT_FILE is the PIO assembly source file (.pio) to assemble.

    \b
    Examples:
        pioasm ws2812.pio                  # Hex words on stdout
        pioasm ws2812.pio -f json -o out   # JSON with metadata
        pioasm uart.pio -p uart_rx         # One program only
        pioasm --single blink.pio          # No .program needed
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    asm = Assembler(collect_errors=keep_going)
    failed: Optional[ProgramErrors] = None

    try:
        if verbose:
            click.echo(f"Assembling {input_file}...", err=True)

        source = input_file.read_text()
        if single:
            programs = {input_file.stem: asm.parse_program(source, str(input_file))}
        else:
            try:
                programs = asm.parse_file(source, str(input_file))
            except ProgramErrors as e:
                failed = e
                programs = e.programs

        if program_name is not None:
            if program_name in programs:
                programs = {program_name: programs[program_name]}
            elif failed is None:
                raise click.BadParameter(
                    f"no program named '{program_name}' in {input_file}",
                    param_hint="'-p' / '--program'",
                )
            else:
                programs = {}

        if not programs and failed is None:
            click.echo(f"Warning: no programs found in {input_file}", err=True)

        if output_format.lower() == "json":
            text = format_json(programs)
        else:
            text = format_hex(programs)

        if output is not None:
            output.write_text(text)
            if verbose:
                click.echo(f"Wrote {len(programs)} program(s) to {output}", err=True)
        else:
            click.echo(text, nl=False)

        if verbose:
            for name, result in programs.items():
                click.echo(f"{name}: {len(result.program)} instruction(s)", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")

    if failed is not None:
        click.echo(failed.collector.report(), err=True)
        sys.exit(ExitCode.BUILD_ERROR)


if __name__ == "__main__":
    main()
