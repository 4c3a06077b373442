"""
Tests for machine identity persistence
"""
import os
import subprocess
import sys
import textwrap
import threading
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = str(Path(__file__).resolve().parents[1])

from ironlicensing.machine_identity import MachineIdentity, get_hostname, get_platform, get_system_info


def test_creates_and_persists_id(temp_dir):
    path = temp_dir / "machine_id"
    machine_id = MachineIdentity(path).get_or_create()

    assert machine_id
    assert path.read_text(encoding="utf-8") == machine_id


def test_reads_existing_id_trimmed(temp_dir):
    path = temp_dir / "machine_id"
    path.write_text("  existing-id\n", encoding="utf-8")

    assert MachineIdentity(path).get_or_create() == "existing-id"


def test_empty_file_is_replaced(temp_dir):
    path = temp_dir / "machine_id"
    path.write_text("   \n", encoding="utf-8")

    machine_id = MachineIdentity(path).get_or_create()

    assert machine_id
    assert path.read_text(encoding="utf-8").strip() == machine_id


def test_repeated_calls_return_same_value(temp_dir):
    identity = MachineIdentity(temp_dir / "machine_id")
    assert identity.get_or_create() == identity.get_or_create()


def test_separate_instances_share_value(temp_dir):
    path = temp_dir / "nested" / "machine_id"
    assert MachineIdentity(path).get_or_create() == MachineIdentity(path).get_or_create()


def test_concurrent_threads_get_one_id(temp_dir):
    path = temp_dir / "machine_id"
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(MachineIdentity(path).get_or_create())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(results)) == 1
    assert path.read_text(encoding="utf-8") == results[0]


def test_concurrent_processes_get_one_id(temp_dir):
    path = temp_dir / "machine_id"
    script = textwrap.dedent(
        """
        import sys
        from pathlib import Path
        from ironlicensing.machine_identity import MachineIdentity
        print(MachineIdentity(Path(sys.argv[1])).get_or_create())
        """
    )
    pythonpath = os.pathsep.join(filter(None, [PROJECT_ROOT, os.environ.get("PYTHONPATH")]))
    env = {**os.environ, "PYTHONPATH": pythonpath}
    procs = [
        subprocess.Popen([sys.executable, "-c", script, str(path)], stdout=subprocess.PIPE, text=True, env=env)
        for _ in range(4)
    ]
    outputs = [p.communicate(timeout=60)[0].strip() for p in procs]

    assert all(p.returncode == 0 for p in procs)
    assert len(set(outputs)) == 1
    assert path.read_text(encoding="utf-8") == outputs[0]


def test_unwritable_location_falls_back_to_process_id(temp_dir):
    blocker = temp_dir / "file"
    blocker.write_text("x")
    identity = MachineIdentity(blocker / "machine_id")

    first = identity.get_or_create()

    assert first
    assert identity.get_or_create() == first


def test_hostname_and_platform():
    with patch("ironlicensing.machine_identity.platform.node", return_value=""):
        assert get_hostname() == "unknown"
    assert get_platform() in {"windows", "macos", "linux", "unknown"}


def test_system_info_keys():
    info = get_system_info()
    assert info["cpus"] >= 1
    assert info["memory_mb"] > 0
    assert "hostname" in info
    assert info["platform"] == get_platform()
