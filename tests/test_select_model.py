from __future__ import annotations

import unittest

from app.errors import CatalogError, EXIT_NO_CANDIDATE
from app.probe import Capabilities
from app.select_model import NoCandidate, NoCandidateReason, Selected, fits, select
from config.model_catalog import DEFAULT_CATALOG, ModelDescriptor

EXAMPLE_CATALOG = (
    ModelDescriptor(name="A", min_ram_gib=1.2),
    ModelDescriptor(name="B", min_ram_gib=1.5),
    ModelDescriptor(name="C", min_ram_gib=1.8),
    ModelDescriptor(name="D", min_ram_gib=5.5),
)


def _caps(ram: float, gpu: bool = False) -> Capabilities:
    return Capabilities(available_ram_gib=ram, has_gpu=gpu)


class SelectModelTests(unittest.TestCase):
    def test_picks_largest_model_that_fits(self) -> None:
        result = select(EXAMPLE_CATALOG, _caps(1.8))
        self.assertEqual(result, Selected(descriptor=EXAMPLE_CATALOG[2]))

    def test_no_candidate_when_ram_too_small(self) -> None:
        result = select(EXAMPLE_CATALOG, _caps(1.0))
        self.assertIsInstance(result, NoCandidate)
        assert isinstance(result, NoCandidate)
        self.assertIs(result.reason, NoCandidateReason.INSUFFICIENT_RAM)
        self.assertEqual(result.reason.value, "insufficient RAM")
        self.assertEqual(result.required_ram_gib, 1.2)
        self.assertIn("insufficient RAM", result.message)
        self.assertEqual(result.exit_code, EXIT_NO_CANDIDATE)

    def test_no_candidate_reports_missing_gpu(self) -> None:
        catalog = (
            ModelDescriptor(name="gpu-small", min_ram_gib=1.0, requires_gpu=True),
            ModelDescriptor(name="cpu-big", min_ram_gib=8.0),
        )
        result = select(catalog, _caps(4.0, gpu=False))
        self.assertIsInstance(result, NoCandidate)
        assert isinstance(result, NoCandidate)
        self.assertIs(result.reason, NoCandidateReason.MISSING_GPU)
        self.assertIn("GPU", result.message)

    def test_gpu_models_selected_only_with_gpu(self) -> None:
        catalog = (
            ModelDescriptor(name="cpu", min_ram_gib=2.0),
            ModelDescriptor(name="gpu", min_ram_gib=4.0, requires_gpu=True),
        )
        self.assertEqual(select(catalog, _caps(8.0, gpu=False)), Selected(catalog[0]))
        self.assertEqual(select(catalog, _caps(8.0, gpu=True)), Selected(catalog[1]))

    def test_ties_go_to_first_declared(self) -> None:
        catalog = (
            ModelDescriptor(name="first", min_ram_gib=2.0),
            ModelDescriptor(name="second", min_ram_gib=2.0),
        )
        result = select(catalog, _caps(3.0))
        self.assertEqual(result, Selected(catalog[0]))

    def test_selection_is_deterministic(self) -> None:
        caps = _caps(6.0, gpu=True)
        results = {select(DEFAULT_CATALOG, caps) for _ in range(5)}
        self.assertEqual(len(results), 1)

    def test_more_ram_never_selects_smaller_model(self) -> None:
        for gpu in (False, True):
            previous = 0.0
            for tenth in range(0, 200):
                ram = tenth / 10
                result = select(DEFAULT_CATALOG, _caps(ram, gpu=gpu))
                if isinstance(result, Selected):
                    self.assertGreaterEqual(result.descriptor.min_ram_gib, previous)
                    previous = result.descriptor.min_ram_gib

    def test_never_exceeds_ram_or_needs_missing_gpu(self) -> None:
        for tenth in range(0, 200):
            caps = _caps(tenth / 10, gpu=False)
            result = select(DEFAULT_CATALOG, caps)
            if isinstance(result, Selected):
                self.assertLessEqual(result.descriptor.min_ram_gib, caps.available_ram_gib)
                self.assertFalse(result.descriptor.requires_gpu)
                self.assertTrue(fits(result.descriptor, caps))

    def test_empty_catalog_is_a_catalog_error(self) -> None:
        with self.assertRaises(CatalogError):
            select((), _caps(4.0))


if __name__ == "__main__":
    unittest.main()
