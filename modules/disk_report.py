"""
Batch module: report free space for each mounted root given in the context.

Run with ``hostpilot run disk_report``.
"""

import shutil


def invoke_disk_report(context, dry_run=False, cancel_event=None):
    paths = context.get("disk_paths", ["/"])
    volumes = {}
    failed = 0
    for path in paths:
        if cancel_event is not None and cancel_event.is_set():
            break
        try:
            usage = shutil.disk_usage(path)
        except OSError:
            failed += 1
            continue
        volumes[path] = {
            "total_bytes": usage.total,
            "free_bytes": usage.free,
            "percent_used": round(usage.used / usage.total * 100, 1) if usage.total else 0.0,
        }

    return {
        "total_operations": len(paths),
        "successful_operations": len(volumes),
        "failed_operations": failed,
        "dry_run": dry_run,
        "volumes": volumes,
    }
