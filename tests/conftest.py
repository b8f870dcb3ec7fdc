import dataclasses

import pytest

from env_vars import Settings
from tests.fakes import FakeObjectStore


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return dataclasses.replace(
        Settings(),
        s3_bucket='test-bucket',
        converter_path='PotreeConverter',
        converter_work_dir=str(tmp_path / 'conversions'),
        converter_max_concurrent=1,
        converter_max_pending=0,
        listing_max_depth=32,
        listing_max_prefixes=10_000,
        max_upload_files=10,
        signed_url_ttl=300,
    )
