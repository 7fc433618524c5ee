import unittest
from unittest.mock import Mock

from snippet_bridge.api.collaborator import CollaboratorError, PropertyRejected, SchemaTarget
from snippet_bridge.api.orchestrator import REGISTRY, orchestrate
from snippet_bridge.api.pipeline import InstantiationRequest, ParseMiss, build_request, instantiate
from snippet_bridge.config.env import BridgeConfig
from snippet_bridge.exports.reports import application_report_md, parse_miss_md
from snippet_bridge.resolver.text import TextLeaf

CARD = ('<Container padding="6" borderRadius="xl"><Heading>Title</Heading>'
        '<Text>Body</Text><Action>Go</Action></Container>')

ACTION_PROPS = {"variant": "VARIANT", "intent": "VARIANT", "size": "VARIANT", "state": "VARIANT"}


def card_target():
    return SchemaTarget.from_dict({
        "properties": {"padding": "VARIANT", "borderRadius": "VARIANT"},
        "children": {
            "heading": [{"text_leaves": [{"id": "h1", "name": "Title"}]}],
            "text": [{"text_leaves": [{"id": "t1", "name": "Body"}]}],
            "action": [{
                "properties": ACTION_PROPS,
                "text_leaves": [{"id": "a2", "name": "Icon glyph"}, {"id": "a1", "name": "Label"}],
            }],
        },
    })


class RejectEverything(SchemaTarget):
    def apply_properties(self, props):
        self.apply_calls += 1
        raise PropertyRejected("combination not available")


class HostDown(SchemaTarget):
    def apply_properties(self, props):
        self.apply_calls += 1
        raise CollaboratorError("host unavailable")


class TestBuildRequest(unittest.TestCase):
    def test_outbound_message_with_kind_defaults(self):
        req = build_request('<Action intent="secondary">Save</Action>', "action")
        self.assertIsInstance(req, InstantiationRequest)
        msg = req.to_message()
        self.assertEqual(msg["componentKind"], "action")
        self.assertEqual(msg["rawSource"], '<Action intent="secondary">Save</Action>')
        self.assertEqual(msg["semanticProps"], {
            "intent": "secondary", "children": "Save", "size": "lg", "variant": "filled", "state": "default",
        })

    def test_defaults_can_be_disabled(self):
        req = build_request("<Action>Save</Action>", "action", kind_defaults=False)
        self.assertEqual(req.to_message()["semanticProps"], {"children": "Save"})

    def test_parse_miss_has_example(self):
        miss = build_request("<Heading>Only a heading</Heading>", "container")
        self.assertIsInstance(miss, ParseMiss)
        self.assertIn("Container", miss.example)
        self.assertIn("No Container component found", miss.message)
        self.assertIn("<Container", parse_miss_md(miss))
        self.assertIsInstance(build_request("", "action"), ParseMiss)

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            build_request("<Slider />", "slider")


class TestInstantiate(unittest.TestCase):
    def test_container_end_to_end(self):
        target = card_target()
        req = build_request(CARD, "container")
        self.assertEqual([c.kind for c in req.descriptor.children], ["heading", "text", "action"])

        result = instantiate(req, target)
        self.assertEqual(target.applied, {"padding": "6 (24px)", "borderRadius": "xl (12px)"})
        self.assertEqual(result.applied_canonical_keys, {"padding", "borderRadius"})
        self.assertEqual(result.strategy_index_used, 1)
        self.assertEqual(result.issues, [])

        self.assertEqual([c.kind for c in result.children], ["heading", "text", "action"])
        heading, body, action = target.children["heading"][0], target.children["text"][0], target.children["action"][0]
        self.assertEqual(heading.texts, {"h1": "Title"})
        self.assertEqual(body.texts, {"t1": "Body"})
        self.assertEqual(action.texts, {"a1": "Go"})
        self.assertEqual(action.applied, {"size": "lg", "variant": "filled", "intent": "primary", "state": "default"})

    def test_nested_content_toggle(self):
        target = card_target()
        result = instantiate(build_request(CARD, "container"), target, config=BridgeConfig(nested_content=False))
        self.assertEqual(result.children, [])
        self.assertEqual(target.children["heading"][0].texts, {})

    def test_extra_occurrences_ignored(self):
        src = "<Container><Action>One</Action><Action>Two</Action><Action>Three</Action></Container>"
        target = SchemaTarget.from_dict({"children": {"action": [
            {"properties": ACTION_PROPS, "text_leaves": [{"id": "x", "name": "Label"}]},
        ]}})
        result = instantiate(build_request(src, "container"), target)
        self.assertEqual(len(result.children), 1)
        self.assertEqual(target.children["action"][0].texts, {"x": "One"})

    def test_decorated_text_property_and_image(self):
        target = SchemaTarget.from_dict({
            "properties": {"✏️ initials#12:0": "TEXT", "size": "VARIANT", "outline": "BOOLEAN"},
            "text_leaves": [{"id": "1", "name": "Status"}, {"id": "2", "name": "Initials", "bound_variable": "initials"}],
        })
        req = build_request('<Avatar initials="JD" size="lg" outline imageUrl="https://img/jd.png" />', "avatar")
        result = instantiate(req, target)
        self.assertEqual(result.text_assignments, {"2": "JD"})
        self.assertEqual(target.applied, {"size": "lg", "outline": True})
        self.assertEqual(target.images, ["https://img/jd.png"])
        self.assertIn("imageUrl", result.applied_canonical_keys)

    def test_image_failure_reported_after_properties(self):
        target = SchemaTarget.from_dict({"properties": {"size": "VARIANT"}, "image_error": "404 Not Found"})
        req = build_request('<Avatar size="sm" imageUrl="https://img/missing.png" />', "avatar")
        result = instantiate(req, target)
        self.assertEqual(target.applied, {"size": "sm"})
        self.assertEqual([i.code for i in result.issues], ["collaborator_failure"])
        self.assertIn("404", result.issues[0].message)

    def test_unmapped_unresolved_and_missing_leaf(self):
        target = SchemaTarget.from_dict({"properties": {"variant": "VARIANT", "intent": "VARIANT"}})
        req = build_request('<Action tooltip="hi" variant="outline" size="sm">Go</Action>', "action")
        result = instantiate(req, target)
        codes = {(i.code, i.key) for i in result.issues}
        self.assertIn(("unmapped_key", "tooltip"), codes)
        self.assertIn(("unresolved_name", "size"), codes)
        self.assertIn(("unresolved_name", "state"), codes)
        self.assertIn(("missing_text_leaf", "label"), codes)
        self.assertEqual(target.applied, {"variant": "outlined", "intent": "primary"})

    def test_pairing_downgrade_applied(self):
        target = SchemaTarget.from_dict({
            "properties": ACTION_PROPS,
            "rejects": [{"variant": "outlined", "intent": "secondary"}],
            "text_leaves": [{"id": "l", "name": "Label"}],
        })
        req = build_request('<Action variant="outline" intent="secondary">Cancel</Action>', "action")
        result = instantiate(req, target)
        self.assertEqual(result.strategy_index_used, 2)
        self.assertEqual(target.applied["intent"], "primary")
        self.assertEqual(result.rejected_keys, {"intent"})
        self.assertIn("strategy: 2", application_report_md(result))

    def test_text_property_value_is_not_normalized(self):
        target = SchemaTarget.from_dict({
            "properties": {"✏️ padding#1:0": "TEXT"},
            "text_leaves": [{"id": "p", "name": "Padding"}],
        })
        result = instantiate(build_request('<Container padding="6"></Container>', "container"), target)
        self.assertEqual(result.text_assignments, {"p": "6"})
        self.assertEqual(target.texts, {"p": "6"})
        self.assertEqual(target.applied, {})

    def test_conflicting_text_keeps_first_value(self):
        target = SchemaTarget.from_dict({
            "properties": {"label": "TEXT"},
            "text_leaves": [{"id": "l", "name": "Label"}],
        })
        result = instantiate(build_request('<Action label="Save">Go</Action>', "action"), target)
        self.assertEqual(target.texts, {"l": "Save"})
        conflicts = [i for i in result.issues if i.code == "conflicting_text"]
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].key, "children")
        self.assertIn("Go", conflicts[0].message)


class TestCollaboratorFailures(unittest.TestCase):
    def test_apply_failure_still_writes_text(self):
        target = HostDown(properties=ACTION_PROPS, text_leaves=[TextLeaf("l", "Label")])
        result = instantiate(build_request("<Action>Go</Action>", "action"), target)
        self.assertEqual(target.apply_calls, 1)
        self.assertEqual(target.texts, {"l": "Go"})
        self.assertIsNone(result.strategy_index_used)
        self.assertEqual(result.rejected_keys, {"size", "variant", "intent", "state"})
        codes = [i.code for i in result.issues]
        self.assertIn("collaborator_failure", codes)
        self.assertNotIn("rejected_combination", codes)
        self.assertIn("host unavailable", result.issues[-1].message)

    def test_text_listing_failure_does_not_skip_sibling_slots(self):
        target = card_target()
        target.children["text"][0].list_text_leaves = Mock(side_effect=CollaboratorError("font load failed"))
        src = "<Container><Text>Body</Text><Action>Go</Action></Container>"
        result = instantiate(build_request(src, "container"), target)
        self.assertEqual([c.kind for c in result.children], ["text", "action"])
        text_issues = result.children[0].issues
        self.assertEqual([(i.code, i.key) for i in text_issues], [("collaborator_failure", "body")])
        self.assertEqual(target.children["action"][0].texts, {"a1": "Go"})

    def test_property_listing_failure_is_recorded(self):
        target = SchemaTarget.from_dict({"text_leaves": [{"id": "h", "name": "Title"}]})
        target.list_available_properties = Mock(side_effect=CollaboratorError("instance detached"))
        result = instantiate(build_request("<Heading>Hello</Heading>", "heading"), target)
        self.assertEqual(result.issues[0].code, "collaborator_failure")
        self.assertIn("instance detached", result.issues[0].message)
        self.assertEqual(target.texts, {"h": "Hello"})

    def test_nested_failure_completes_invocation(self):
        target = card_target()
        target.children["text"][0].list_text_leaves = Mock(side_effect=CollaboratorError("font load failed"))
        inv = REGISTRY.create("<Container><Text>Body</Text><Action>Go</Action></Container>", "container")
        done = Mock()
        orchestrate(inv, target, on_complete=done, config=BridgeConfig())
        done.assert_called_once_with(inv)
        self.assertEqual(inv.status, "completed")
        self.assertEqual(target.children["action"][0].texts, {"a1": "Go"})
        self.assertIn("Warn", [e["stage"] for e in inv.events])


class TestOrchestrate(unittest.TestCase):
    def test_all_strategies_rejected_still_completes_once(self):
        target = RejectEverything(properties=ACTION_PROPS)
        inv = REGISTRY.create('<Action variant="ghost" intent="danger" size="sm">Go</Action>', "action")
        done = Mock()
        orchestrate(inv, target, on_complete=done, config=BridgeConfig())
        done.assert_called_once_with(inv)
        self.assertTrue(inv.done.is_set())
        self.assertEqual(inv.status, "completed")
        self.assertIsNone(inv.result.strategy_index_used)
        self.assertIn("rejected_combination", [i.code for i in inv.result.issues])
        self.assertEqual(inv.result.rejected_keys, {"variant", "intent", "size", "state"})
        self.assertEqual(target.apply_calls, 5)
        self.assertEqual(inv.events[-1]["stage"], "Done")

    def test_parse_miss_completes(self):
        inv = REGISTRY.create("nothing to see", "heading")
        done = Mock()
        orchestrate(inv, SchemaTarget(), on_complete=done, config=BridgeConfig())
        done.assert_called_once_with(inv)
        self.assertIsNotNone(inv.miss)
        self.assertIsNone(inv.result)
        self.assertIn("Heading", inv.report())

    def test_internal_fault_marks_failed_and_completes(self):
        target = SchemaTarget()
        target.list_available_properties = Mock(side_effect=RuntimeError("scene graph gone"))
        inv = REGISTRY.create("<Heading>x</Heading>", "heading")
        done = Mock()
        orchestrate(inv, target, on_complete=done, config=BridgeConfig())
        done.assert_called_once_with(inv)
        self.assertEqual(inv.status, "failed")
        self.assertEqual(inv.error, "scene graph gone")
        self.assertEqual(inv.events[-1]["stage"], "Error")


if __name__ == "__main__":
    unittest.main()
