import json
from pathlib import Path

from kitchen_stock.main import app


def test_openapi_paths_snapshot():
    snapshot_path = Path(__file__).parent / "snapshots" / "openapi_paths_snapshot.json"
    expected_paths = json.loads(snapshot_path.read_text(encoding="utf-8"))
    actual_paths = sorted(app.openapi()["paths"].keys())
    assert actual_paths == expected_paths


def test_status_update_documents_error_envelope():
    operation = app.openapi()["paths"]["/purchase-orders/{order_id}/status"]["patch"]
    assert {"404", "422", "500"} <= set(operation["responses"].keys())
