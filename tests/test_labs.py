import json

import pytest

from stemulator.core.labs import ScienceLab, bundled_labs, find_lab, load_labs


class TestScienceLab:
    def test_from_backend_payload(self, lab_payload):
        lab = ScienceLab.from_dict(lab_payload)
        assert lab.id == "TEST-1"
        assert lab.sub_topic == "Adaptation"
        assert lab.part_ids() == [1, 2]
        assert lab.lab_parts[0].setup[0].startswith("Move the population")

    def test_prefers_underscore_id(self, lab_payload):
        lab_payload["_id"] = "PRIMARY"
        assert ScienceLab.from_dict(lab_payload).id == "PRIMARY"

    def test_missing_id(self):
        with pytest.raises(ValueError, match="identifier"):
            ScienceLab.from_dict({"title": "Nameless"})

    def test_parts_for(self, lab_payload):
        lab = ScienceLab.from_dict(lab_payload)
        assert [p.part_id for p in lab.parts_for()] == [1, 2]
        assert [p.title for p in lab.parts_for(2)] == ["Wolves"]
        assert lab.parts_for(5) == []


class TestLoadLabs:
    def test_bundled_labs(self):
        labs = bundled_labs()
        lab = find_lab(labs, "HS-LS4-2")
        assert lab is not None
        assert lab.part_ids() == [1, 2, 3]
        assert lab.learning_goals.big_idea.startswith("Natural selection")
        assert "Introduce wolves as a predator." in lab.lab_parts[0].setup
        assert find_lab(labs, "missing") is None

    def test_single_object_file(self, tmp_path, lab_payload):
        path = tmp_path / "lab.json"
        path.write_text(json.dumps(lab_payload))
        labs = load_labs(path)
        assert [lab.id for lab in labs] == ["TEST-1"]

    def test_bad_json(self, tmp_path):
        path = tmp_path / "labs.json"
        path.write_text("[")
        with pytest.raises(ValueError, match="Failed to load labs"):
            load_labs(path)

    def test_malformed_part(self, tmp_path):
        path = tmp_path / "labs.json"
        path.write_text(json.dumps([{"_id": "X", "labParts": [{"title": "no id"}]}]))
        with pytest.raises(ValueError, match="Malformed"):
            load_labs(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError):
            load_labs(tmp_path / "absent.json")
