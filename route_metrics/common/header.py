"""
Builds the `header` record that opens every run in the log: what was run,
on which interpreter and host, with which configuration.
"""
import os
import platform
import socket
import sys
import time
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import psutil


def make_header(version: str, config: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    errors: List[str] = []
    header: Dict[str, Any] = {
        "version": version,
        "argv": list(sys.argv),
        "python_version": platform.python_version(),
        "os": get_os_info(errors),
        "package": get_project_metadata(sys.argv[0] if sys.argv else ""),
        "config": config,
    }
    return header, errors


def get_os_info(errors: List[str]) -> Dict[str, Any]:
    info: Dict[str, Any] = {
        "arch": platform.machine(),
        "hostname": socket.gethostname(),
        "type": platform.system(),
        "platform": sys.platform,
        "release": platform.release(),
        "version": platform.version(),
        "endianness": "LE" if sys.byteorder == "little" else "BE",
    }

    try:
        mem = psutil.virtual_memory()
        info["freemem"] = mem.available
        info["totalmem"] = mem.total
    except (OSError, RuntimeError) as e:
        errors.append(f"memory: {e}")

    try:
        info["loadavg"] = list(os.getloadavg())
    except (AttributeError, OSError):
        errors.append("not-available: os.getloadavg()")

    try:
        info["uptime"] = int(time.time() - psutil.boot_time())
    except (OSError, RuntimeError) as e:
        errors.append(f"uptime: {e}")

    info["cpus"] = psutil.cpu_count() or 0
    info["cpu_model"] = platform.processor() or None

    try:
        info["network_interfaces"] = {
            name: [
                {"address": addr.address, "netmask": addr.netmask}
                for addr in addrs
                if addr.family in (socket.AF_INET, socket.AF_INET6)
            ]
            for name, addrs in psutil.net_if_addrs().items()
        }
    except (OSError, RuntimeError) as e:
        errors.append(f"network_interfaces: {e}")

    return info


def get_project_metadata(run_path: str) -> Optional[Dict[str, Any]]:
    """
    `[project]` table of the nearest pyproject.toml, searching upward from the
    directory of the program being run.
    """
    start = Path(run_path or ".").resolve()
    directory = start if start.is_dir() else start.parent

    for candidate in [directory, *directory.parents]:
        pyproject = candidate / "pyproject.toml"
        if not pyproject.is_file():
            continue
        try:
            with open(pyproject, "rb") as f:
                return tomllib.load(f).get("project")
        except (OSError, tomllib.TOMLDecodeError):
            return None
    return None
