"""
CLI entry point for lcmgen.

Usage:
    python3 -m tools.lcmgen types/geometry.lcm --outdir gen/
    python3 -m tools.lcmgen types/*.lcm --outdir gen/ --matlab --no-python
    python3 -m tools.lcmgen types/*.lcm --outdir gen/ --config lcmgen.yaml --lazy
"""

import argparse
import os
import sys

from .config import parse_options_yaml
from .hashing import fingerprint
from .matlab_emitter import emit_matlab_files
from .parser import parse_schema
from .python_emitter import emit_python_module
from .schema import ValidationError


def needs_generation(inputs, output):
    """True unless ``output`` exists and is newer than every input."""
    if not os.path.exists(output):
        return True
    out_mtime = os.path.getmtime(output)
    return any(os.path.getmtime(path) > out_mtime for path in inputs)


def generate(args):
    if args.config:
        with open(args.config) as f:
            options = parse_options_yaml(f.read())
    else:
        options = parse_options_yaml("")

    if args.module:
        if not args.module.isidentifier():
            raise ValidationError(
                f"--module must be a Python identifier, got {args.module!r}")
        options.python_module = args.module
    if args.no_python:
        options.python = False
    if args.matlab:
        options.matlab = True
    if args.lazy:
        options.lazy = True

    texts = []
    for path in args.lcm:
        with open(path) as f:
            texts.append(f.read())
    schema = parse_schema(*texts)

    files = []
    if options.python:
        source = ", ".join(os.path.basename(p) for p in args.lcm)
        files.append((f"{options.python_module}.py",
                      lambda: emit_python_module(schema, source=source)))
    if options.matlab:
        for filename, content in emit_matlab_files(schema).items():
            files.append((filename, lambda content=content: content))

    os.makedirs(args.outdir, exist_ok=True)

    written = 0
    for filename, render in files:
        path = os.path.join(args.outdir, filename)
        if options.lazy and not needs_generation(args.lcm, path):
            print(f"  skipped {path}")
            continue
        with open(path, "w") as f:
            f.write(render())
        print(f"  wrote {path}")
        written += 1

    print(f"\nGenerated {written} file(s) for {len(schema)} type(s)")
    for s in schema:
        print(f"  {s.name}: fingerprint=0x{fingerprint(schema, s):016x}")
    return written


def main(argv=None):
    parser = argparse.ArgumentParser(description="LCM type code generator")
    parser.add_argument("lcm", nargs="+", help="Input .lcm file(s)")
    parser.add_argument("--outdir", required=True, help="Output directory")
    parser.add_argument("--config", default=None, help="YAML options file")
    parser.add_argument("--module", default=None,
                        help="Name of the generated Python module (default: lcmtypes)")
    parser.add_argument("--no-python", action="store_true",
                        help="Do not generate the Python module")
    parser.add_argument("--matlab", action="store_true",
                        help="Generate MATLAB .m files")
    parser.add_argument("--lazy", action="store_true",
                        help="Only rewrite outputs older than their inputs")
    args = parser.parse_args(argv)

    try:
        generate(args)
    except (SyntaxError, ValidationError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
