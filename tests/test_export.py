import json
from datetime import datetime, timezone

from awsshare.export import build_results, flatten, to_csv, write_results
from awsshare.models import InstanceRecord


class TestFlatten:

    def test_nested_keys_dotted(self):
        assert flatten({"a": 1, "tags": {"Name": "web", "env": "prod"}}) == {
            "a": "1",
            "tags.Name": "web",
            "tags.env": "prod",
        }

    def test_lists_and_scalars(self):
        flat = flatten({
            "ids": ["vol-1", "vol-2"],
            "rules": [{"port": "22"}],
            "ok": True,
            "missing": None,
            "empty": {},
        })
        assert flat["ids"] == "vol-1; vol-2"
        assert flat["rules"] == '{"port":"22"}'
        assert flat["ok"] == "true"
        assert flat["missing"] == ""
        assert flat["empty"] == ""


class TestCsv:
    """Tests for CSV export."""

    def test_header_is_sorted_union(self):
        csv_text = to_csv([{"b": 1, "a": 2}, {"c": 3, "a": 4}])
        assert csv_text == "a,b,c\n2,1,\n4,,3\n"

    def test_values_with_separators_are_quoted(self):
        csv_text = to_csv([{"name": 'web "blue", east', "note": "line one\nline two", "id": "i-1"}])
        assert csv_text == 'id,name,note\ni-1,"web ""blue"", east","line one\nline two"\n'

    def test_tabs_data_excluded(self):
        record = InstanceRecord(
            instance_id="i-0abc12345def67890",
            service="ec2",
            fields={"state": "running"},
            tabs_data={"details": {"state": "running"}},
        )
        header = to_csv([record, {"instance_id": "x", "tabs_data": {"a": 1}}]).splitlines()[0]
        assert header == "instance_id,name,region,service,state"

    def test_error_rows_keep_their_columns(self):
        record = InstanceRecord(instance_id="i-0abc12345def67890", service="ec2", fields={"state": "running"})
        lines = to_csv([record, {"instance_id": "i-0fedcba9876543210", "service": "ec2", "error": "boom"}]).splitlines()
        assert lines[0] == "error,instance_id,name,region,service,state"
        assert lines[2] == "boom,i-0fedcba9876543210,,,ec2,"


class TestResults:

    def test_build_results(self):
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        record = InstanceRecord(instance_id="box", service="lightsail", tabs_data={"connect": {}})
        results = build_results([], [record], fetched_at=when)
        assert results["fetched_at"] == "2024-01-02T03:04:05+00:00"
        assert results["region"] == "default"
        assert results["ec2"] == []
        assert results["lightsail"][0]["tabs_data"] == {"connect": {}}

    def test_write_json(self, tmp_path):
        results = build_results([{"instance_id": "i-0abc12345def67890"}], [], region="us-east-1")
        path = write_results(tmp_path / "out" / "instances.json", results)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["region"] == "us-east-1"
        assert data["ec2"][0]["instance_id"] == "i-0abc12345def67890"

    def test_write_csv_by_extension(self, tmp_path):
        results = build_results([{"instance_id": "i-1", "service": "ec2"}], [{"instance_id": "box", "service": "lightsail"}])
        path = write_results(tmp_path / "instances.CSV", results)
        assert path.read_text(encoding="utf-8") == "instance_id,service\ni-1,ec2\nbox,lightsail\n"
