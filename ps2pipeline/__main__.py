"""
Handles CLI interactions for ps2pipeline

usage: ps2pipeline [-h] [--version] {convert,pipeline,inspect} ...
"""

from __future__ import annotations

import argparse
import logging
import logging.config
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

import argcomplete

from ps2pipeline import __about__
from ps2pipeline import __doc__ as root_doc
from ps2pipeline.commands.compile_pipeline import compile_files, dump_yaml
from ps2pipeline.commands.convert_step import convert_build_step
from ps2pipeline.config import config
from ps2pipeline.errors.exceptions import ConfigurationError, NotFound, Ps2PipelineError
from ps2pipeline.models import BuildSystem, ConversionOptions
from ps2pipeline.utils.cli_suggestions import SmartParser
from ps2pipeline.utils.logging_config import generate_config
from ps2pipeline.utils.parse_powershell import find_function, parse_signature

logger = logging.getLogger(__name__)


def parse_defaults(pairs: list[str] | None) -> dict[str, str]:
    """
    Turn ``KEY=VALUE`` arguments into a dictionary.

    Examples:
        >>> parse_defaults(["Version=1.0", "Build_Flag=true"])
        {'Version': '1.0', 'Build_Flag': 'true'}
    """
    defaults: dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected KEY=VALUE, got '{pair}'")
        key, value = pair.split("=", 1)
        defaults[key.strip()] = value
    return defaults


def build_options(args: argparse.Namespace, name: str = "") -> ConversionOptions:
    """Merge command line arguments over config file and environment settings."""
    defaults: dict[str, Any] = dict(config.default_parameters)
    defaults.update(parse_defaults(getattr(args, "default", None)))
    return ConversionOptions(
        name=name,
        build_system=BuildSystem.from_name(args.target or config.build_system or "ado"),
        variable_parameters=args.variable_parameter or config.variable_parameters or [],
        environment_parameters=args.environment_parameter or config.environment_parameters or [],
        unique_parameters=args.unique_parameter or config.unique_parameters or [],
        exclude_parameters=args.exclude_parameter or config.exclude_parameters or [],
        default_parameters=defaults,
        pool_vm_image=args.pool_vm_image or config.pool_vm_image,
        use_system_access_token=bool(args.system_access_token or config.use_system_access_token),
    )


def write_output(text: str, out: str | None, dry_run: bool) -> None:
    if not out:
        print(text, end="")
        return
    out_path = Path(out)
    if dry_run:
        logger.info(f"DRY RUN: Would have written {len(text)} characters to {out_path}")
        return
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8")
    logger.info(f"Wrote {out_path}")


def read_script_argument(script: str) -> str:
    """``-`` reads the script from stdin."""
    if script == "-":
        return sys.stdin.read()
    return script


def load_script(args: argparse.Namespace) -> tuple[str | None, str | None]:
    """Script text and module text from --script, --module-file and --command."""
    module_text = None
    if args.module_file:
        module_text = Path(args.module_file).read_text(encoding="utf-8")
    if args.script is not None:
        return read_script_argument(args.script), module_text
    if module_text is not None:
        command = args.command_name or args.name
        if not command:
            raise ConfigurationError("--module-file needs --name or --command to pick the function to read")
        script_text = find_function(module_text, command)
        if script_text is None:
            raise NotFound(f"Function '{command}' not found in {args.module_file}")
        return script_text, module_text
    return None, module_text


def convert_handler(args: argparse.Namespace) -> int:
    """Handler for the 'convert' command."""
    try:
        options = build_options(args, name=args.name or "")
        if args.file:
            result = convert_build_step(options, path=args.file)
        else:
            script_text, module_text = load_script(args)
            result = convert_build_step(
                options,
                script_text=script_text,
                module=args.module,
                command_name=args.command_name,
                module_text=module_text,
            )
    except FileNotFoundError as e:
        logger.error(f"❌ An error occurred: {e}")
        return 10
    except (Ps2PipelineError, ValueError) as e:
        logger.error(f"❌ An error occurred: {e}")
        return 1

    if result is None:
        logger.error(f"❌ Unsupported file extension: {args.file}")
        return 2
    if result.parameters and options.build_system is BuildSystem.GITHUB:
        names = ", ".join(spec.name for spec in result.parameters)
        logger.info(f"Step needs workflow_dispatch inputs: {names}")
    write_output(dump_yaml(result.step), args.out, args.dry_run)
    return 0


def pipeline_handler(args: argparse.Namespace) -> int:
    """Handler for the 'pipeline' command."""
    try:
        options = build_options(args)
        document = compile_files(args.files, options)
    except FileNotFoundError as e:
        logger.error(f"❌ An error occurred: {e}")
        return 10
    except (Ps2PipelineError, ValueError) as e:
        logger.error(f"❌ An error occurred: {e}")
        return 1
    write_output(dump_yaml(document), args.out, args.dry_run)
    logger.info("✅ Pipeline generation complete.")
    return 0


def inspect_handler(args: argparse.Namespace) -> int:
    """Handler for the 'inspect' command."""
    try:
        if args.file:
            script_text: str | None = Path(args.file).read_text(encoding="utf-8")
            module_text = None
        else:
            script_text, module_text = load_script(args)
        if script_text is None:
            logger.error("❌ One of --file, --script or --module-file is required.")
            return 1
        signature = parse_signature(script_text, context_text=module_text)
    except FileNotFoundError as e:
        logger.error(f"❌ An error occurred: {e}")
        return 10
    except Ps2PipelineError as e:
        logger.error(f"❌ An error occurred: {e}")
        return 1

    parameters = []
    for descriptor in signature.parameters:
        item = asdict(descriptor)
        item["type"] = descriptor.type.value
        item["valid_values"] = list(descriptor.valid_values) if descriptor.valid_values is not None else None
        parameters.append({k: v for k, v in item.items() if v is not None and v != ""})
    document = {"supports_should_process": signature.supports_should_process, "parameters": parameters}
    print(dump_yaml(document), end="")
    return 0


def add_common_arguments(parser):
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate the command without filesystem changes.",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose (DEBUG) logging output.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Disable output.")


def add_source_arguments(parser):
    parser.add_argument("--file", help="Script file (.ps1, .sh or .py).")
    parser.add_argument("--script", help="Inline PowerShell script, or '-' to read it from stdin.")
    parser.add_argument("--module-file", help="Module source (.psm1) holding the command and enum declarations.")


def add_conversion_arguments(parser):
    parser.add_argument(
        "--target",
        choices=["ado", "github"],
        type=str.lower,
        help="Build system to generate for (default: ado).",
    )
    parser.add_argument(
        "--variable-parameter",
        action="append",
        metavar="WILDCARD",
        help="Parameters bound to pipeline variables (Azure DevOps only). Repeatable.",
    )
    parser.add_argument(
        "--environment-parameter",
        action="append",
        metavar="WILDCARD",
        help="Parameters bound to environment variables. Repeatable.",
    )
    parser.add_argument(
        "--unique-parameter",
        action="append",
        metavar="WILDCARD",
        help="Parameters whose pipeline parameter is prefixed with the step name. Repeatable.",
    )
    parser.add_argument(
        "--exclude-parameter",
        action="append",
        metavar="WILDCARD",
        help="Parameters left out of the step. Repeatable.",
    )
    parser.add_argument(
        "--default",
        action="append",
        metavar="KEY=VALUE",
        help="Default value for a parameter, keyed by name or <step>_<name>. Repeatable.",
    )
    parser.add_argument("--pool-vm-image", help="Agent image; Windows images get a 'powershell' step.")
    parser.add_argument(
        "--system-access-token",
        action="store_true",
        help="Expose SYSTEM_ACCESSTOKEN to the step (Azure DevOps).",
    )
    parser.add_argument("--out", help="Write YAML to this file instead of stdout.")


def main() -> int:
    """Main CLI entry point."""
    parser = SmartParser(
        prog=__about__.__title__,
        description=root_doc,
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__about__.__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- Convert Command ---
    convert_parser = subparsers.add_parser(
        "convert", help="Convert one script, module command or script file into a pipeline step."
    )
    convert_parser.add_argument("--name", help="Step name; defaults to the file name for --file.")
    add_source_arguments(convert_parser)
    convert_parser.add_argument("--module", help="Module to import before invoking the command.")
    convert_parser.add_argument("--command", dest="command_name", help="Command to invoke (default: --name).")
    add_conversion_arguments(convert_parser)
    add_common_arguments(convert_parser)
    convert_parser.set_defaults(func=convert_handler)

    # --- Pipeline Command ---
    pipeline_parser = subparsers.add_parser(
        "pipeline", help="Convert several script files into a complete pipeline document."
    )
    pipeline_parser.add_argument("files", nargs="+", help="Script files, one step each.")
    add_conversion_arguments(pipeline_parser)
    add_common_arguments(pipeline_parser)
    pipeline_parser.set_defaults(func=pipeline_handler)

    # --- Inspect Command ---
    inspect_parser = subparsers.add_parser(
        "inspect", help="Show the parameters ps2pipeline reads from a PowerShell script."
    )
    inspect_parser.add_argument("--name", help="Function to read from --module-file.")
    inspect_parser.add_argument("--command", dest="command_name", help="Alias of --name.")
    add_source_arguments(inspect_parser)
    add_common_arguments(inspect_parser)
    inspect_parser.set_defaults(func=inspect_handler)

    argcomplete.autocomplete(parser)
    args = parser.parse_args()

    if args.command == "convert":
        if not (args.file or args.script is not None or args.module_file):
            convert_parser.error("one of --file, --script or --module-file is required")
        if not args.file and not args.name:
            convert_parser.error("argument --name is required unless --file is given")

    # Merge boolean flags
    args.verbose = args.verbose or config.verbose or False
    args.quiet = args.quiet or config.quiet or False
    args.dry_run = args.dry_run or False

    # --- Setup Logging ---
    if args.verbose:
        log_level = "DEBUG"
    elif args.quiet:
        log_level = "CRITICAL"
    else:
        log_level = "INFO"
    logging.config.dictConfig(generate_config(level=log_level))

    # Execute the appropriate handler
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
