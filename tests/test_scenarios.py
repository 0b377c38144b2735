# tests/test_scenarios.py
import unittest
import sys
import os

# Add parent directory to path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ensemble_matching.allocation.solve import solve
from ensemble_matching.config import DEFAULT_CAPACITIES
from ensemble_matching.data_generation.toy_pool import make_toy_pool
from ensemble_matching.models import AssignmentRequest
from tests.utils import ids, make_candidate


class TestAssignmentScenarios(unittest.TestCase):

    def test_over_subscribed_stage_crew(self):
        """10 candidates want crew_stage with capacity 5."""
        pool = [make_candidate(f"c{w:03d}", {"crew_stage": w}) for w in range(10, 101, 10)]
        solution = solve(AssignmentRequest(capacities={"crew_stage": 5}), pool)

        stage = solution.target("crew_stage")
        self.assertEqual(len(stage.assigned), 5)
        self.assertEqual(ids(stage.assigned), ["c100", "c090", "c080", "c070", "c060"])
        self.assertEqual(ids(stage.alternatives), ["c050", "c040", "c030", "c020", "c010"])
        self.assertEqual([p.rank for p in stage.alternatives], [1, 2, 3, 4, 5])

        self.assertEqual(len(solution.conflicts), 1)
        conflict = solution.conflicts[0]
        self.assertEqual(conflict.target_code, "crew_stage")
        self.assertEqual(conflict.reason, "over-demand")
        self.assertEqual(conflict.target_label, "Bühne")

        row = solution.demand_vs_capacity[0]
        self.assertEqual(
            (row.demand, row.capacity, row.assigned, row.fill_rate),
            (10, 5, 5, 1.0),
        )

    def test_single_candidate_for_props(self):
        """crew_props capacity 2, only one interested candidate."""
        pool = [make_candidate("solo", {"crew_props": 40})]
        solution = solve(AssignmentRequest(capacities={"crew_props": 2}), pool)

        props = solution.target("crew_props")
        self.assertEqual(ids(props.assigned), ["solo"])
        self.assertEqual(props.alternatives, ())
        self.assertEqual(solution.conflicts, ())
        self.assertEqual(solution.demand_vs_capacity[0].fill_rate, 0.5)
        self.assertAlmostEqual(props.average_score, 0.48)

    def test_zero_capacity_routes_everyone_to_alternatives(self):
        pool = [make_candidate(f"c{i}", {"crew_light": 50 + i * 10}) for i in range(3)]
        solution = solve(AssignmentRequest(capacities={"crew_light": 0}), pool)

        light = solution.target("crew_light")
        self.assertEqual(light.assigned, ())
        self.assertEqual(ids(light.alternatives), ["c2", "c1", "c0"])
        self.assertEqual(light.average_score, 0.0)
        self.assertEqual(solution.demand_vs_capacity[0].fill_rate, 0.0)
        self.assertEqual([c.reason for c in solution.conflicts], ["over-demand"])

    def test_zero_demand_target(self):
        pool = [make_candidate("a", {"crew_stage": 60})]
        solution = solve(AssignmentRequest(capacities={"crew_stage": 1, "crew_sound": 3}), pool)

        sound = solution.target("crew_sound")
        self.assertEqual((sound.demand, sound.assigned, sound.alternatives), (0, (), ()))
        self.assertEqual(sound.average_score, 0.0)
        self.assertFalse(any(c.target_code == "crew_sound" for c in solution.conflicts))

    def test_empty_pool_gives_well_formed_solution(self):
        solution = solve(AssignmentRequest(capacities={"crew_stage": 2, "acting_lead": 1}), [])

        self.assertEqual(len(solution.targets), 2)
        self.assertTrue(all(not t.assigned for t in solution.targets))
        self.assertEqual(solution.conflicts, ())
        self.assertTrue(all(s.status == "good" and not s.metrics for s in solution.fairness))
        self.assertEqual(solution.audit.eligible_candidates, 0)

    def test_hybrid_candidate_holds_one_assignment_per_domain(self):
        hybrid = make_candidate("h", {"acting_lead": 90, "crew_stage": 90}, focus="both")
        solution = solve(AssignmentRequest(capacities={"acting_lead": 1, "crew_stage": 1}), [hybrid])

        self.assertEqual(ids(solution.target("acting_lead").assigned), ["h"])
        self.assertEqual(ids(solution.target("crew_stage").assigned), ["h"])


class TestSolutionProperties(unittest.TestCase):

    def run_toy(self, seed, capacities=None):
        pool = make_toy_pool(num_candidates=40, seed=seed)
        request = AssignmentRequest(capacities=capacities or dict(DEFAULT_CAPACITIES))
        return solve(request, pool), pool, request

    def test_capacity_and_domain_uniqueness(self):
        for seed in (1, 7, 42):
            solution, _, _ = self.run_toy(seed)
            per_domain = {}
            for t in solution.targets:
                self.assertLessEqual(len(t.assigned), t.capacity, f"seed {seed}: {t.code}")
                for p in t.assigned:
                    key = (t.domain, p.candidate_id)
                    self.assertNotIn(key, per_domain, f"seed {seed}: {key} assigned twice")
                    per_domain[key] = t.code

    def test_score_order_holds_unless_swapped(self):
        for seed in (1, 7, 42):
            solution, _, _ = self.run_toy(seed)
            swapped = {c.target_code for c in solution.conflicts if c.reason == "fairness-override"}
            self.assertEqual(len(swapped) > 0, solution.audit.swaps > 0)
            for t in solution.targets:
                if t.code in swapped or not t.assigned or not t.alternatives:
                    continue
                self.assertGreaterEqual(
                    min(p.score for p in t.assigned),
                    max(p.score for p in t.alternatives),
                    f"seed {seed}: {t.code}",
                )

    def test_every_over_subscribed_target_has_conflict(self):
        for seed in (1, 7, 42):
            solution, _, _ = self.run_toy(seed, capacities={code: 1 for code in DEFAULT_CAPACITIES})
            flagged = {c.target_code for c in solution.conflicts if c.reason == "over-demand"}
            for t in solution.targets:
                if t.demand > t.capacity:
                    self.assertIn(t.code, flagged)

    def test_solve_is_deterministic(self):
        first, pool, request = self.run_toy(42)
        second = solve(request, list(pool))
        self.assertEqual(first.id, second.id)
        self.assertEqual(first.to_dict(), second.to_dict())

        shuffled = solve(request, list(reversed(pool)))
        self.assertEqual(first.to_dict(), shuffled.to_dict())

    def test_changed_input_gives_new_id(self):
        first, pool, request = self.run_toy(42)
        changed = AssignmentRequest(capacities={**request.capacities, "crew_stage": 1})
        self.assertNotEqual(first.id, solve(changed, pool).id)


if __name__ == '__main__':
    unittest.main()
