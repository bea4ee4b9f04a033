# io_utils/file_utils.py
"""
File naming and parameter recording helpers.
"""

import os
import datetime
import json
from typing import Dict


def make_result_filename(
    projname: str,
    input_path: str,
    desc: str,
    ext: str = "png",
    outdir: str = ".",
) -> str:
    base = os.path.splitext(os.path.basename(input_path))[0]
    timestamp = datetime.datetime.now().strftime("%Y%m%dT%H%M%S")
    safe_desc = str(desc).replace(" ", "_")
    fname = f"{projname}_{base}_{safe_desc}_{timestamp}.{ext}"
    os.makedirs(outdir, exist_ok=True)
    return os.path.join(outdir, fname)


def save_parameters_txt(outdir: str, params: Dict, name: str = "parameters.txt"):
    """Write one `key: value` line per entry; nested mappings are written as JSON."""
    os.makedirs(outdir, exist_ok=True)
    path = os.path.join(outdir, name)
    with open(path, "w", encoding="utf-8") as f:
        for k, v in params.items():
            if isinstance(v, dict):
                v = json.dumps(v, sort_keys=True, default=str)
            f.write(f"{k}: {v}\n")
    return path
