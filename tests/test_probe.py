from __future__ import annotations

import subprocess
import unittest
from types import SimpleNamespace
from unittest.mock import patch

from app.errors import ProbeError
from app.probe import Capabilities, detect_gpu, probe

GIB = 1024 ** 3


class ProbeTests(unittest.TestCase):
    def test_probe_reports_available_ram_and_gpu(self) -> None:
        vm = SimpleNamespace(available=6 * GIB, total=16 * GIB)
        with patch("app.probe.psutil.virtual_memory", return_value=vm), patch(
            "app.probe.detect_gpu", return_value="Fake GPU"
        ):
            caps = probe()
        self.assertAlmostEqual(caps.available_ram_gib, 6.0)
        self.assertAlmostEqual(caps.total_ram_gib or 0.0, 16.0)
        self.assertTrue(caps.has_gpu)
        self.assertEqual(caps.gpu_name, "Fake GPU")

    def test_missing_gpu_is_not_an_error(self) -> None:
        vm = SimpleNamespace(available=2 * GIB, total=4 * GIB)
        with patch("app.probe.psutil.virtual_memory", return_value=vm), patch(
            "app.probe.detect_gpu", return_value=None
        ):
            caps = probe()
        self.assertFalse(caps.has_gpu)
        self.assertIn("none detected", caps.summary)

    def test_memory_failure_raises_probe_error(self) -> None:
        with patch("app.probe.psutil.virtual_memory", side_effect=OSError("no /proc")):
            with self.assertRaises(ProbeError):
                probe()

    def test_unusable_memory_value_raises_probe_error(self) -> None:
        for bad in (None, -1, float("nan")):
            with self.subTest(bad=bad):
                vm = SimpleNamespace(available=bad, total=4 * GIB)
                with patch("app.probe.psutil.virtual_memory", return_value=vm):
                    with self.assertRaises(ProbeError):
                        probe()


class DetectGpuTests(unittest.TestCase):
    def test_falls_back_to_nvidia_smi(self) -> None:
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="NVIDIA RTX 4090\n", stderr="")
        with patch("app.probe.torch", None), patch(
            "app.probe.shutil.which", return_value="/usr/bin/nvidia-smi"
        ), patch("app.probe.subprocess.run", return_value=completed):
            self.assertEqual(detect_gpu(), "NVIDIA RTX 4090")

    def test_no_tools_means_no_gpu(self) -> None:
        with patch("app.probe.torch", None), patch("app.probe.shutil.which", return_value=None):
            self.assertIsNone(detect_gpu())

    def test_nvidia_smi_failure_is_swallowed(self) -> None:
        with patch("app.probe.torch", None), patch(
            "app.probe.shutil.which", return_value="/usr/bin/nvidia-smi"
        ), patch(
            "app.probe.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="nvidia-smi", timeout=5),
        ):
            self.assertIsNone(detect_gpu())

    def test_capabilities_summary_mentions_ram(self) -> None:
        caps = Capabilities(available_ram_gib=1.5, has_gpu=False)
        self.assertIn("1.50 GiB", caps.summary)


if __name__ == "__main__":
    unittest.main()
