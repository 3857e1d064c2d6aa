"""Tests du chargement des fichiers d'enregistrements et de configuration."""

import json
from pathlib import Path

import pandas as pd
import pytest

from demolink.batch import AutoMatchStrategy
from demolink.config import AlgorithmType, ConfigError, ConfigFormatError
from demolink.io_records import RecordFileError, load_batch_config, load_matching_config, load_records

ROWS = [
    {
        "id": "c-1",
        "first_name": "Amanuel",
        "last_name": "Tesfaye",
        "birth_date": "1990-03-02",
        "identifiers": [{"type": "nida", "value": "123"}],
        "cell_leader_first_name": "Kahsay",
    },
    {"id": "c-2", "first_name": "Selam", "phone_number": 255712345678},
]


def test_load_json_list(tmp_path: Path) -> None:
    path = tmp_path / "records.json"
    path.write_text(json.dumps(ROWS), encoding="utf-8")
    records = load_records(path)
    assert [r.id for r in records] == ["c-1", "c-2"]
    assert records[0].identifiers[0].value == "123"
    assert records[0].cell_leader_first_name == "Kahsay"
    assert records[1].phone_number == "255712345678"


def test_load_json_wrapped(tmp_path: Path) -> None:
    path = tmp_path / "records.json"
    path.write_text(json.dumps({"records": ROWS}), encoding="utf-8")
    assert len(load_records(path)) == 2


def test_load_csv(tmp_path: Path) -> None:
    path = tmp_path / "records.csv"
    pd.DataFrame([{"id": "c-1", "first_name": "Amanuel", "village": ""}, {"id": "c-2", "first_name": "Selam"}]).to_csv(
        path, index=False
    )
    records = load_records(path)
    assert [r.first_name for r in records] == ["Amanuel", "Selam"]
    assert records[1].village == ""


def test_load_xlsx(tmp_path: Path) -> None:
    path = tmp_path / "records.xlsx"
    pd.DataFrame([{"id": "c-1", "first_name": "Amanuel", "birth_date": "1990-03-02"}]).to_excel(
        path, index=False, engine="openpyxl"
    )
    records = load_records(path)
    assert records[0].birth_date == "1990-03-02"


def test_load_records_errors(tmp_path: Path) -> None:
    with pytest.raises(RecordFileError, match="introuvable"):
        load_records(tmp_path / "absent.json")
    with pytest.raises(RecordFileError, match="Format non supporté"):
        load_records(tmp_path / "records.txt")

    bad = tmp_path / "bad.json"
    bad.write_text("{ nope", encoding="utf-8")
    with pytest.raises(RecordFileError, match="JSON invalide"):
        load_records(bad)

    scalar = tmp_path / "scalar.json"
    scalar.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(RecordFileError, match="n'est pas un objet"):
        load_records(scalar)


def test_load_matching_config(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"threshold": {"high": 85, "medium": 60, "low": 30}, "algorithm_type": "probabilistic"}),
        encoding="utf-8",
    )
    config = load_matching_config(path)
    assert config.threshold.low == 30
    assert config.algorithm_type is AlgorithmType.PROBABILISTIC


def test_load_matching_config_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigFormatError, match="introuvable"):
        load_matching_config(tmp_path / "absent.json")

    path = tmp_path / "config.json"
    path.write_text(json.dumps({"field_weights": {"cell_leader_last_name": 3}}), encoding="utf-8")
    with pytest.raises(ConfigError, match="administratif"):
        load_matching_config(path)


def test_load_batch_config(tmp_path: Path) -> None:
    path = tmp_path / "batch.json"
    path.write_text(json.dumps({"auto_match_strategy": "threshold-based", "batch_size": 25}), encoding="utf-8")
    cfg = load_batch_config(path)
    assert cfg.auto_match_strategy is AutoMatchStrategy.THRESHOLD_BASED
    assert cfg.batch_size == 25
