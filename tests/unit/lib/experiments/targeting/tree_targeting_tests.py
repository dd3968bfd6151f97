import unittest

from flagcore.lib.experiments.targeting import TargetingContext
from flagcore.lib.experiments.targeting.tree_targeting import create_targeting_tree
from flagcore.lib.experiments.targeting.tree_targeting import TargetingNodeError
from flagcore.lib.experiments.targeting.tree_targeting import UnknownTargetingOperatorError


def get_simple_config():
    targeting_cfg = {
        "ALL": [
            {
                "ANY": [
                    {"EQ": {"field": "is_employee", "value": True}},
                    {"EQ": {"field": "id", "values": ["u1", "u2", "u3", "u4"]}},
                ]
            },
            {"NOT": {"EQ": {"field": "is_blocked", "value": True}}},
            {"EQ": {"field": "is_logged_in", "values": [True, False]}},
            {"NOT": {"EQ": {"field": "company.id", "values": ["c1", "c2"]}}},
            {
                "ALL": [
                    {"EQ": {"field": "orders", "values": [1, 2, 3, 4, 5]}},
                    {"EQ": {"field": "orders", "value": 5}},
                ]
            },
        ]
    }

    return targeting_cfg


def get_context(**kwargs):
    attributes = {
        "bool_field": True,
        "str_field": "string_value",
        "num_field": 5,
        "explicit_none_field": None,
        "version_field": "2.10.0",
        "nested": {"str_field": "nested_value", "num_field": 1.5},
        "list_field": ["a", "b"],
    }
    return TargetingContext(attributes, **kwargs)


class TestTreeTargeting(unittest.TestCase):
    def test_nominal(self):
        targeting_tree = create_targeting_tree(get_simple_config())

        attributes = {
            "id": "u1",
            "is_employee": False,
            "is_blocked": False,
            "orders": 5,
            "company": {"id": "c3"},
        }
        self.assertFalse(targeting_tree.evaluate(TargetingContext(attributes)))

        attributes["is_logged_in"] = True
        self.assertTrue(targeting_tree.evaluate(TargetingContext(attributes)))

        attributes["company"]["id"] = "c1"
        self.assertFalse(targeting_tree.evaluate(TargetingContext(attributes)))

    def test_create_tree_multiple_keys(self):
        config = get_simple_config()
        config["ANY"] = [{"EQ": {"field": "is_employee", "value": True}}]

        with self.assertRaises(TargetingNodeError):
            create_targeting_tree(config)

    def test_create_tree_not_a_dict(self):
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree([{"OVERRIDE": True}])

    def test_create_tree_unknown_operator(self):
        config = get_simple_config()
        config["UNKNOWN"] = config.pop("ALL")

        with self.assertRaises(UnknownTargetingOperatorError):
            create_targeting_tree(config)

    def test_nested_errors_propagate(self):
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"ALL": [{"EQ": {"field": "x"}}]})
        with self.assertRaises(UnknownTargetingOperatorError):
            create_targeting_tree({"ANY": [{"IN": {"field": "x", "value": 1}}]})


class TestEqualNode(unittest.TestCase):
    def test_equal_single_value(self):
        context = get_context()

        self.assertTrue(
            create_targeting_tree({"EQ": {"field": "bool_field", "value": True}}).evaluate(context)
        )
        self.assertTrue(
            create_targeting_tree({"EQ": {"field": "num_field", "value": 5.0}}).evaluate(context)
        )
        self.assertTrue(
            create_targeting_tree(
                {"EQ": {"field": "str_field", "value": "string_value"}}
            ).evaluate(context)
        )

    def test_equal_is_strict_about_types(self):
        context = get_context()

        self.assertFalse(
            create_targeting_tree({"EQ": {"field": "num_field", "value": "5"}}).evaluate(context)
        )
        self.assertFalse(
            create_targeting_tree({"EQ": {"field": "bool_field", "value": 1}}).evaluate(context)
        )

    def test_equal_nested_field(self):
        context = get_context()

        targeting_tree = create_targeting_tree(
            {"EQ": {"field": "nested.str_field", "value": "nested_value"}}
        )
        self.assertTrue(targeting_tree.evaluate(context))

    def test_equal_structured_value(self):
        context = get_context()

        targeting_tree = create_targeting_tree({"EQ": {"field": "list_field", "value": ["a", "b"]}})
        self.assertTrue(targeting_tree.evaluate(context))

    def test_equal_none(self):
        context = get_context()

        # explicit None in the attributes
        targeting_tree = create_targeting_tree(
            {"EQ": {"field": "explicit_none_field", "value": None}}
        )
        self.assertTrue(targeting_tree.evaluate(context))

        # field missing from the attributes
        targeting_tree = create_targeting_tree(
            {"EQ": {"field": "implicit_none_field", "values": [None]}}
        )
        self.assertTrue(targeting_tree.evaluate(context))

    def test_equal_list_values(self):
        context = get_context()

        targeting_tree = create_targeting_tree(
            {"EQ": {"field": "num_field", "values": [5, 6, 7, 8, 9]}}
        )
        self.assertTrue(targeting_tree.evaluate(context))

        targeting_tree = create_targeting_tree(
            {"EQ": {"field": "str_field", "values": ["value_1", "value_2"]}}
        )
        self.assertFalse(targeting_tree.evaluate(context))

    def test_equal_node_bad_inputs(self):
        bad_configs = [
            {"EQ": {}},
            {"EQ": {"field": "some_field"}},
            {"EQ": {"field": "some_field", "values": ["one", True], "value": "str_arg"}},
            {"EQ": {"fields": "some_field", "value": "str_arg"}},
            {"EQ": {"field": "some_field", "valu": "str_arg"}},
            {"EQ": {"field": "", "value": "str_arg"}},
            {"EQ": {"field": "some_field", "values": "not_a_list"}},
            {"EQ": ["field", "value"]},
        ]
        for config in bad_configs:
            with self.subTest(config=config):
                with self.assertRaises(TargetingNodeError):
                    create_targeting_tree(config)


class TestNotNode(unittest.TestCase):
    def test_not_node(self):
        targeting_tree = create_targeting_tree(
            {"NOT": {"EQ": {"field": "str_field", "value": "string_value"}}}
        )
        self.assertFalse(targeting_tree.evaluate(TargetingContext({"str_field": "string_value"})))
        self.assertTrue(targeting_tree.evaluate(TargetingContext({"str_field": "str_value"})))

    def test_not_node_bad_inputs(self):
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"NOT": {}})

        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"NOT": [{"OVERRIDE": True}]})

        targeting_config_multiple_args = {
            "NOT": {
                "EQ": {"field": "is_employee", "value": True},
                "OVERRIDE": True,
            }
        }
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree(targeting_config_multiple_args)


class TestOverrideNode(unittest.TestCase):
    def test_nominal(self):
        context = get_context()

        self.assertTrue(create_targeting_tree({"OVERRIDE": True}).evaluate(context))
        self.assertFalse(create_targeting_tree({"OVERRIDE": False}).evaluate(context))

    def test_bad_inputs(self):
        context = get_context()

        self.assertFalse(create_targeting_tree({"OVERRIDE": "string"}).evaluate(context))
        self.assertFalse(create_targeting_tree({"OVERRIDE": {"key": "value"}}).evaluate(context))
        self.assertFalse(create_targeting_tree({"OVERRIDE": 1}).evaluate(context))


class TestAnyNode(unittest.TestCase):
    def test_any_node_one_match(self):
        targeting_tree = create_targeting_tree(
            {
                "ANY": [
                    {"EQ": {"field": "num_field", "value": 5}},
                    {"EQ": {"field": "str_field", "value": "str_value_1"}},
                    {"EQ": {"field": "bool_field", "value": False}},
                ]
            }
        )
        self.assertTrue(targeting_tree.evaluate(get_context()))

    def test_any_node_no_match(self):
        targeting_tree = create_targeting_tree(
            {
                "ANY": [
                    {"EQ": {"field": "num_field", "value": 6}},
                    {"EQ": {"field": "str_field", "value": "str_value_1"}},
                ]
            }
        )
        self.assertFalse(targeting_tree.evaluate(get_context()))

    def test_any_node_empty_list(self):
        self.assertFalse(create_targeting_tree({"ANY": []}).evaluate(get_context()))

    def test_any_node_invalid_inputs(self):
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"ANY": {"field": "fieldname", "value": "notalist"}})


class TestAllNode(unittest.TestCase):
    def test_all_node_some_match(self):
        targeting_tree = create_targeting_tree(
            {
                "ALL": [
                    {"EQ": {"field": "num_field", "value": 5}},
                    {"EQ": {"field": "bool_field", "value": False}},
                ]
            }
        )
        self.assertFalse(targeting_tree.evaluate(get_context()))

    def test_all_node_all_match(self):
        targeting_tree = create_targeting_tree(
            {
                "ALL": [
                    {"EQ": {"field": "num_field", "value": 5}},
                    {"EQ": {"field": "str_field", "value": "string_value"}},
                    {"EQ": {"field": "bool_field", "value": True}},
                ]
            }
        )
        self.assertTrue(targeting_tree.evaluate(get_context()))

    def test_all_node_empty_list(self):
        self.assertTrue(create_targeting_tree({"ALL": []}).evaluate(get_context()))

    def test_all_node_invalid_inputs(self):
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"ALL": {"field": "fieldname", "value": "notalist"}})


class TestComparisonNode(unittest.TestCase):
    def assertComparisons(self, field, value, expected):
        context = get_context()
        for operator_name, result in expected.items():
            with self.subTest(operator=operator_name, field=field, value=value):
                targeting_tree = create_targeting_tree(
                    {operator_name: {"field": field, "value": value}}
                )
                self.assertEqual(targeting_tree.evaluate(context), result)

    def test_numbers(self):
        self.assertComparisons(
            "num_field", 5, {"GT": False, "GE": True, "LT": False, "LE": True, "NE": False}
        )
        self.assertComparisons(
            "num_field", 4, {"GT": True, "GE": True, "LT": False, "LE": False, "NE": True}
        )
        self.assertComparisons(
            "num_field", 6, {"GT": False, "GE": False, "LT": True, "LE": True, "NE": True}
        )

    def test_text(self):
        self.assertComparisons(
            "str_field", "string_valuf", {"GT": False, "LT": True, "NE": True}
        )
        self.assertComparisons("str_field", "a", {"GT": True, "LE": False})

    def test_text_against_number(self):
        # the text attribute is read as a number
        context = TargetingContext({"orders": "10"})
        self.assertTrue(
            create_targeting_tree({"GT": {"field": "orders", "value": 9}}).evaluate(context)
        )
        # compared as numbers, not as text
        self.assertFalse(
            create_targeting_tree({"LT": {"field": "orders", "value": 9}}).evaluate(context)
        )

    def test_text_with_no_numeric_form(self):
        self.assertComparisons("str_field", 1, {"GT": False, "GE": False, "LT": False, "LE": False})

    def test_missing_field(self):
        self.assertComparisons(
            "missing_field",
            0,
            {"GT": False, "GE": False, "LT": False, "LE": False, "NE": True},
        )
        self.assertComparisons("explicit_none_field", None, {"GE": False, "NE": False})

    def test_bad_inputs(self):
        bad_configs = [
            {"GT": {"field": "num_field"}},
            {"GT": {"field": "num_field", "values": [1]}},
            {"LT": {"fields": "num_field", "value": 1}},
            {"NE": {"field": "num_field", "value": 1, "extra": 2}},
        ]
        for config in bad_configs:
            with self.subTest(config=config):
                with self.assertRaises(TargetingNodeError):
                    create_targeting_tree(config)

    def test_number_without_float_form(self):
        targeting_tree = create_targeting_tree({"GT": {"field": "n", "value": 10**400}})
        self.assertFalse(targeting_tree.evaluate(TargetingContext({"n": 1})))

        targeting_tree = create_targeting_tree({"EQ": {"field": "n", "value": None}})
        self.assertTrue(targeting_tree.evaluate(TargetingContext({"n": 10**400})))


class TestVersionNode(unittest.TestCase):
    def assertVersions(self, field, value, expected, context=None):
        context = context or get_context()
        for operator_name, result in expected.items():
            with self.subTest(operator=operator_name, field=field, value=value):
                targeting_tree = create_targeting_tree(
                    {operator_name: {"field": field, "value": value}}
                )
                self.assertEqual(targeting_tree.evaluate(context), result)

    def test_versions(self):
        self.assertVersions(
            "version_field",
            "2.4.0",
            {"VEQ": False, "VNE": True, "VGT": True, "VGE": True, "VLT": False, "VLE": False},
        )
        self.assertVersions(
            "version_field",
            "v2.10.0+build7",
            {"VEQ": True, "VNE": False, "VGT": False, "VGE": True, "VLE": True},
        )
        self.assertVersions("version_field", "2.10.0-rc.1", {"VGT": True, "VLT": False})

    def test_numeric_attribute(self):
        context = TargetingContext({"app_version": 2})
        self.assertVersions("app_version", "2.4.0", {"VLT": True, "VEQ": False}, context)

    def test_missing_field(self):
        self.assertVersions("missing_field", "1.0.0", {"VEQ": False, "VNE": False, "VLT": False})

    def test_attribute_with_no_text_form(self):
        self.assertVersions("nested", "1.0.0", {"VEQ": False, "VGT": False})

    def test_bad_inputs(self):
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"VGT": {"field": "version_field", "value": 2}})
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"VGT": {"field": "version_field"}})


class TestUrlNode(unittest.TestCase):
    def test_simple_pattern(self):
        targeting_tree = create_targeting_tree({"URL": "*.example.com/checkout/*"})

        self.assertTrue(
            targeting_tree.evaluate(get_context(url="https://www.example.com/checkout/pay"))
        )
        self.assertFalse(targeting_tree.evaluate(get_context(url="https://www.example.com/cart")))

    def test_targets(self):
        targeting_tree = create_targeting_tree(
            {
                "URL": [
                    {"type": "simple", "pattern": "example.com/*", "include": True},
                    {"type": "regex", "pattern": "/admin", "include": False},
                ]
            }
        )

        self.assertTrue(targeting_tree.evaluate(get_context(url="https://example.com/home")))
        self.assertFalse(targeting_tree.evaluate(get_context(url="https://example.com/admin")))

    def test_no_url(self):
        self.assertFalse(create_targeting_tree({"URL": "example.com/*"}).evaluate(get_context()))

    def test_bad_inputs(self):
        with self.assertRaises(TargetingNodeError):
            create_targeting_tree({"URL": {"pattern": "example.com"}})
