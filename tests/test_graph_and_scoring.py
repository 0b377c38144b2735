# tests/test_graph_and_scoring.py
import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ensemble_matching.allocation.graph_builder import (
    apply_filters,
    build_preference_graph,
    label_for_target,
)
from ensemble_matching.allocation.scoring import score_edge, score_graph
from ensemble_matching.data_generation.toy_pool import make_toy_pool
from ensemble_matching.models import AssignmentFilters, AssignmentRequest, Edge
from tests.utils import make_candidate


class TestPreferenceGraph(unittest.TestCase):

    def test_zero_weights_and_unrequested_targets_are_ignored(self):
        pool = [
            make_candidate("a", {"crew_stage": 0, "crew_light": 50, "crew_sound": 80}),
            make_candidate("b", {"crew_stage": 0}),
        ]
        graph = build_preference_graph(AssignmentRequest(capacities={"crew_stage": 2, "crew_light": 1}), pool)

        self.assertEqual(graph.demand, {"crew_stage": 0, "crew_light": 1})
        self.assertEqual([c.id for c in graph.eligible], ["a"])
        self.assertEqual(graph.filtered_out, 0)

    def test_targets_are_ordered_by_domain_then_code(self):
        request = AssignmentRequest(capacities={"crew_stage": 1, "acting_lead": 1, "crew_light": 1})
        graph = build_preference_graph(request, [])
        self.assertEqual([t.code for t in graph.targets], ["acting_lead", "crew_light", "crew_stage"])

    def test_unknown_target_label_and_domain_from_prefix(self):
        graph = build_preference_graph(AssignmentRequest(capacities={"crew_fly_rail": 2}), [])
        self.assertEqual(graph.targets[0].domain, "crew")
        self.assertEqual(label_for_target("crew_fly_rail"), "Crew Fly Rail")

    def test_filters_and_across_or_within(self):
        pool = [
            make_candidate("t_ok", {"crew_stage": 50}, focus="tech", document_status="complete"),
            make_candidate("b_ok", {"crew_stage": 50}, focus="both", document_status="complete"),
            make_candidate("t_pending", {"crew_stage": 50}, focus="tech", document_status="pending"),
            make_candidate("a_ok", {"crew_stage": 50}, focus="acting", document_status="complete"),
        ]
        filters = AssignmentFilters(focuses=("tech", "both"), document_statuses=("complete",))
        self.assertEqual([c.id for c in apply_filters(pool, filters)], ["t_ok", "b_ok"])

    def test_age_bucket_filter_drops_unknown_age(self):
        pool = [
            make_candidate("teen", {"crew_stage": 50}, age=15),
            make_candidate("adult", {"crew_stage": 50}, age=30),
            make_candidate("unknown", {"crew_stage": 50}, age=None),
        ]
        kept = apply_filters(pool, AssignmentFilters(age_buckets=("under18",)))
        self.assertEqual([c.id for c in kept], ["teen"])

    def test_background_filter_is_case_insensitive(self):
        pool = [
            make_candidate("s", {"crew_stage": 50}, background="Studium"),
            make_candidate("b", {"crew_stage": 50}, background="Beruf"),
        ]
        kept = apply_filters(pool, AssignmentFilters(backgrounds=("studium",)))
        self.assertEqual([c.id for c in kept], ["s"])

    def test_filtering_is_idempotent(self):
        pool = make_toy_pool(num_candidates=60, seed=3)
        filters = AssignmentFilters(focuses=("tech", "both"), age_buckets=("18_25", "26_40"))
        once = apply_filters(pool, filters)
        self.assertEqual(apply_filters(once, filters), once)

    def test_guardian_gate_only_when_requested(self):
        pool = [make_candidate("minor", {"acting_lead": 80}, focus="acting", age=15, document_status="missing")]

        open_graph = build_preference_graph(AssignmentRequest(capacities={"acting_lead": 1}), pool)
        gated = build_preference_graph(
            AssignmentRequest(capacities={"acting_lead": 1}, require_guardian_documents=True), pool,
        )
        self.assertEqual(open_graph.demand["acting_lead"], 1)
        self.assertEqual(gated.demand["acting_lead"], 0)
        self.assertEqual(gated.eligible, ())


class TestScoring(unittest.TestCase):

    def _edge(self, candidate, code="crew_stage"):
        return score_edge(Edge(candidate=candidate, target_code=code, domain="crew",
                               raw_weight=candidate.preferences[0].weight))

    def test_quality_factor_and_reasons(self):
        c = make_candidate("m", {"crew_stage": 80}, tenure_year=2019, document_status="complete",
                           profile_complete=True)
        e = self._edge(c)
        # 1.0 + 0.15 tenure + 0.05 profile + 0.05 document + 0.2 focus
        self.assertAlmostEqual(e.quality_factor, 1.45)
        self.assertAlmostEqual(e.score, 1.16)
        self.assertEqual(e.reasons[0], "hohe Präferenzgewichtung")
        self.assertIn("Mitglied seit 2019", e.reasons)
        self.assertIn("Dokument vollständig", e.reasons)

    def test_missing_documents_penalize_minors_only(self):
        minor = self._edge(make_candidate("m", {"crew_stage": 50}, age=15, document_status="missing"))
        adult = self._edge(make_candidate("a", {"crew_stage": 50}, age=30, document_status="missing"))
        self.assertAlmostEqual(minor.quality_factor, 1.15)
        self.assertAlmostEqual(adult.quality_factor, 1.2)
        self.assertIn("Erziehungsberechtigten-Dokument fehlt", minor.reasons)

    def test_off_focus_penalty(self):
        e = self._edge(make_candidate("x", {"crew_stage": 50}, focus="acting"))
        self.assertAlmostEqual(e.quality_factor, 0.95)
        self.assertIn("Primärer Fokus außerhalb Technik", e.reasons)
        self.assertEqual(e.reasons[0], "Präferenzgewicht 50 %")

    def _ranked_ids(self, pool, code="crew_stage"):
        graph = build_preference_graph(AssignmentRequest(capacities={code: 1}), pool)
        return [e.candidate_id for e in score_graph(graph)[code]]

    def test_earlier_tenure_wins_exact_tie(self):
        pool = [
            make_candidate("a", {"crew_stage": 50}, tenure_year=2018),
            make_candidate("b", {"crew_stage": 50}, tenure_year=2012),
        ]
        self.assertEqual(self._ranked_ids(pool), ["b", "a"])

    def test_document_readiness_breaks_remaining_tie(self):
        # 0.48 * 1.25 == 0.50 * 1.2 == 0.6
        pool = [
            make_candidate("c1", {"crew_stage": 50}, document_status="pending"),
            make_candidate("c2", {"crew_stage": 48}, document_status="complete"),
        ]
        self.assertEqual(self._ranked_ids(pool), ["c2", "c1"])

    def test_candidate_id_is_final_tie_break(self):
        pool = [make_candidate("b", {"crew_stage": 50}), make_candidate("a", {"crew_stage": 50})]
        self.assertEqual(self._ranked_ids(pool), ["a", "b"])

    def test_tie_break_never_overrides_score(self):
        pool = [
            make_candidate("veteran", {"crew_stage": 40}, tenure_year=2005, document_status="complete"),
            make_candidate("newbie", {"crew_stage": 90}),
        ]
        self.assertEqual(self._ranked_ids(pool), ["newbie", "veteran"])

    def test_confidence_is_margin_to_next_edge(self):
        pool = [make_candidate("hi", {"crew_stage": 100}), make_candidate("lo", {"crew_stage": 50})]
        graph = build_preference_graph(AssignmentRequest(capacities={"crew_stage": 1}), pool)
        hi, lo = score_graph(graph)["crew_stage"]
        self.assertAlmostEqual(hi.confidence, 0.5)
        self.assertAlmostEqual(lo.confidence, 1.0)

    def test_confidence_is_zero_on_exact_tie(self):
        pool = [make_candidate("a", {"crew_stage": 50}), make_candidate("b", {"crew_stage": 50})]
        graph = build_preference_graph(AssignmentRequest(capacities={"crew_stage": 1}), pool)
        self.assertEqual(score_graph(graph)["crew_stage"][0].confidence, 0.0)


if __name__ == '__main__':
    unittest.main()
