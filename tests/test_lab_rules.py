import pytest

from stemulator.core.settings import Environment, FoodAvailability, Predation
from stemulator.sim.lab_rules import LAB_RULES, LabRule, scan_setup_lines


class TestScanSetupLines:
    @pytest.mark.parametrize(
        "line, field, value",
        [
            ("Move the rabbits to a desert.", "environment", Environment.DESERT),
            ("A rocky hillside.", "environment", Environment.DESERT),
            ("It starts to snow.", "environment", Environment.ARCTIC),
            ("An ARCTIC winter.", "environment", Environment.ARCTIC),
            ("Introduce wolves as a predator.", "predation", Predation.HIGH),
            ("Add a predator.", "predation", Predation.HIGH),
            ("Only tough food remains.", "food_availability", FoodAvailability.LOW),
            ("Food availability becomes tough.", "food_availability", FoodAvailability.LOW),
            ("Mutations are frequent.", "mutation_rate", 8),
            ("Allow the population to mutate.", "mutation_rate", 8),
        ],
    )
    def test_single_keyword(self, line, field, value):
        patch = scan_setup_lines([line])
        assert patch.settings == {field: value}
        assert patch.favor_pale is False

    def test_white_fur_sets_flag_only(self):
        patch = scan_setup_lines(["Some rabbits have white fur."])
        assert patch.settings == {}
        assert patch.favor_pale is True

    def test_food_availability_needs_tough(self):
        assert scan_setup_lines(["Food availability is high."]).settings == {}

    def test_later_line_wins(self):
        assert scan_setup_lines(["A desert.", "Then snowy."]).settings["environment"] is Environment.ARCTIC
        assert scan_setup_lines(["Snowy.", "Then desert."]).settings["environment"] is Environment.DESERT

    def test_rocky_checked_after_arctic_within_line(self):
        patch = scan_setup_lines(["Rocky slopes covered in snow."])
        assert patch.settings["environment"] is Environment.DESERT

    def test_no_match_is_empty(self):
        patch = scan_setup_lines(["Observe the population changes over 10 generations."])
        assert not patch
        assert patch.settings == {}

    def test_combined_lines(self):
        patch = scan_setup_lines(
            [
                "Change the environment to a snowy landscape.",
                "Add a white fur mutation to part of the population.",
                "Introduce wolves.",
            ]
        )
        assert patch.settings == {
            "environment": Environment.ARCTIC,
            "mutation_rate": 8,
            "predation": Predation.HIGH,
        }
        assert patch.favor_pale is True

    def test_custom_rule_table(self):
        rules = (LabRule(("flood",), "environment", Environment.FOREST),)
        assert scan_setup_lines(["A flood."], rules).settings == {"environment": Environment.FOREST}
        assert scan_setup_lines(["A desert."], rules).settings == {}

    def test_rule_table_fields_are_known(self):
        known = {"environment", "predation", "food_availability", "mutation_rate", "favor_pale"}
        assert {rule.field for rule in LAB_RULES} <= known
