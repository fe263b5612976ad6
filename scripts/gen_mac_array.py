#!/usr/bin/env python3
"""Generate MAC array Verilog from pecore."""

import argparse
import sys
from pathlib import Path

# Add src to path if running from scripts/
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from amaranth.back import verilog  # noqa: E402

from pecore.config import ElementFormat, MacMode, PEConfig  # noqa: E402
from pecore.core.mac_array import MACArray  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Generate MAC array Verilog")
    parser.add_argument("--width", type=int, default=8, help="Element width in bits")
    parser.add_argument("--rows", type=int, default=8, help="MAC rows")
    parser.add_argument("--cols", type=int, default=8, help="MAC columns")
    parser.add_argument(
        "--temporal", action="store_true", help="Use the temporal dot-product reduction"
    )
    args = parser.parse_args()

    gen_dir = project_root / "gen"
    gen_dir.mkdir(exist_ok=True)

    config = PEConfig(
        data_width=args.width,
        element_format=ElementFormat.INTEGER,
        mac_rows=args.rows,
        mac_cols=args.cols,
        mac_mode=MacMode.TEMPORAL_DOT_PRODUCT if args.temporal else MacMode.ROW_SCALED_WEIGHT_SUM,
    )
    mac = MACArray(config)

    output_path = gen_dir / "mac_array.v"
    with open(output_path, "w") as f:
        f.write(verilog.convert(mac, name="MACArray"))

    print(f"Generated {output_path} ({args.rows}x{args.cols}, {args.width}-bit)")


if __name__ == "__main__":
    main()
