"""Crée des fichiers de démonstration pour demolink (visites cliniques et registre communautaire)."""

import json
from pathlib import Path

import pandas as pd

from demolink.records import Identifier, Record

DATA_DIR = Path(__file__).parent / "data"
DATA_DIR.mkdir(exist_ok=True)

registry = [
    Record(id="reg-1", first_name="Amanuel", last_name="Tesfaye", sex="M", birth_date="1990-03-02",
           village="Adi Ha", household_head="Tesfaye Gebru", cell_leader_first_name="Kahsay"),
    Record(id="reg-2", first_name="Selam", last_name="Gebremedhin", sex="F", birth_date="1975-11-20",
           village="Mekelle", mother_name="Lemlem", identifiers=[Identifier("nida", "19751120-001")]),
    Record(id="reg-3", first_name="Haile", last_name="Berhane", sex="M", birth_date="1982-06-10",
           village="Axum", phone_number="+255 712 345 678"),
    Record(id="reg-4", first_name="Amanuel", last_name="Tesfay", sex="M", birth_date="02/03/1990",
           village="Adi-Ha"),
]

clinic = [
    Record(id="cli-1", first_name="Amanuel", last_name="Tesfaye", sex="male", birth_date="02.03.1990",
           village="Adi Ha"),
    Record(id="cli-2", first_name="Selam", last_name="Gebremedhin", sex="F", birth_date="1975-11-21",
           identifiers=[Identifier("NIDA", "19751120 001")]),
    Record(id="cli-3", first_name="Yohannes", last_name="Kidane", sex="M", birth_date="1960-01-01",
           village="Gondar"),
]

(DATA_DIR / "registry.json").write_text(json.dumps([r.to_dict() for r in registry], indent=2), encoding="utf-8")
(DATA_DIR / "clinic.json").write_text(json.dumps([r.to_dict() for r in clinic], indent=2), encoding="utf-8")

# Version tableur du registre (sans identifiants structurés)
flat = pd.DataFrame([{k: v for k, v in r.to_dict().items() if k not in ("identifiers", "metadata")} for r in registry])
flat.to_excel(DATA_DIR / "registry.xlsx", index=False, engine="openpyxl")
print(f"Fichiers créés dans {DATA_DIR}")
print("Essayer : demolink batch -s examples/data/clinic.json -t examples/data/registry.json -o rapport.xlsx")
