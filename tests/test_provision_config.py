from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from config.batch_config import BatchConfig
from config.model_template_config import ModelTemplateConfig
from config.provision_config import ProvisionConfig
from config.registry_config import RegistryConfig
from config.server_config import ServerConfig


class ProvisionConfigTests(unittest.TestCase):
    def test_from_strings_normalizes_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg = ProvisionConfig.from_strings(
                derived_model_name="  local-assistant ",
                config_path=Path(tmpdir) / "Modelfile",
                verify_max_attempts="5",
                verify_interval_s="0.5",
                verify_deadline_s="",
            )
        self.assertEqual(cfg.derived_model_name, "local-assistant")
        self.assertTrue(cfg.config_path.is_absolute())
        self.assertEqual(cfg.verify_max_attempts, 5)
        self.assertEqual(cfg.verify_interval_s, 0.5)
        self.assertIsNone(cfg.verify_deadline_s)

    def test_rejects_invalid_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            with self.assertRaises(ValueError):
                ProvisionConfig.from_strings(derived_model_name="", config_path=tmp / "Modelfile")
            with self.assertRaises(ValueError):
                ProvisionConfig.from_strings(derived_model_name="my model", config_path=tmp / "Modelfile")
            with self.assertRaises(ValueError):
                ProvisionConfig.from_strings(derived_model_name="m", config_path=tmp)
            with self.assertRaises(ValueError):
                ProvisionConfig.from_strings(derived_model_name="m", config_path=tmp / "M", verify_max_attempts=0)
            with self.assertRaises(ValueError):
                ProvisionConfig.from_strings(derived_model_name="m", config_path=tmp / "M", verify_interval_s=-1)
            with self.assertRaises(ValueError):
                ProvisionConfig.from_strings(derived_model_name="m", config_path=tmp / "M", verify_deadline_s=0)


class ModelTemplateConfigTests(unittest.TestCase):
    def test_defaults_are_valid(self) -> None:
        cfg = ModelTemplateConfig.from_values()
        self.assertEqual((cfg.num_ctx, cfg.temperature, cfg.top_p), (4096, 0.7, 0.9))

    def test_rejects_out_of_range_parameters(self) -> None:
        with self.assertRaises(ValueError):
            ModelTemplateConfig.from_values(num_ctx=0)
        with self.assertRaises(ValueError):
            ModelTemplateConfig.from_values(temperature=-0.1)
        with self.assertRaises(ValueError):
            ModelTemplateConfig.from_values(top_p=0)
        with self.assertRaises(ValueError):
            ModelTemplateConfig.from_values(top_p=1.5)
        with self.assertRaises(ValueError):
            ModelTemplateConfig.from_values(temperature="nan")

    def test_rejects_preamble_that_breaks_block(self) -> None:
        with self.assertRaises(ValueError):
            ModelTemplateConfig.from_values(system_preamble='say """ hi')
        with self.assertRaises(ValueError):
            ModelTemplateConfig.from_values(system_preamble="   ")


class ServerBatchRegistryConfigTests(unittest.TestCase):
    def test_server_base_url_and_validation(self) -> None:
        cfg = ServerConfig.from_strings(host=" localhost ", port="8081", wait_s="5")
        self.assertEqual(cfg.base_url, "http://localhost:8081")
        with self.assertRaises(ValueError):
            ServerConfig.from_strings(port=0)
        with self.assertRaises(ValueError):
            ServerConfig.from_strings(wait_s=0)

    def test_batch_config(self) -> None:
        cfg = BatchConfig.from_values(max_concurrency="2", request_timeout_s="30", cache_max_entries="")
        self.assertEqual(cfg.max_concurrency, 2)
        self.assertIsNone(cfg.cache_max_entries)
        with self.assertRaises(ValueError):
            BatchConfig.from_values(max_concurrency=0)
        with self.assertRaises(ValueError):
            BatchConfig.from_values(cache_max_entries=0)

    def test_registry_config(self) -> None:
        cfg = RegistryConfig.from_values(registry_bin="ollama", command_timeout_s="15", list_attempts="2")
        self.assertEqual(cfg.command_timeout_s, 15.0)
        self.assertEqual(cfg.list_attempts, 2)
        with self.assertRaises(ValueError):
            RegistryConfig.from_values(registry_bin=" ")
        with self.assertRaises(ValueError):
            RegistryConfig.from_values(list_attempts=0)


if __name__ == "__main__":
    unittest.main()
