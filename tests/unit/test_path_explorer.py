"""
Tests for path exploration.
"""
from conftest import cmp
from bvassert.analysis import AssertionChecker, PathConstraint, PathExplorer
from bvassert.config import VerifierConfig
from bvassert.domain import Environment, Narrower, ValueSet
from bvassert.ir import Arm, Assert, Block, Branch, Const, Declare, Let, Program, Ref, Variable
from bvassert.verification import VerdictAggregator, VerdictKind


def _explore(program, config=None):
    config = config or VerifierConfig()
    narrower = Narrower()
    aggregator = VerdictAggregator(program.assertion_sites())
    explorer = PathExplorer(narrower, AssertionChecker(program, narrower, config), aggregator, config)
    stopped = explorer.explore(program)
    return explorer, aggregator.report(program.name, stopped)


def test_fixture_explores_every_arm(if_elseif_else_program):
    """Test that both three-arm chains are explored once per arm."""
    explorer, report = _explore(if_elseif_else_program)
    assert explorer.paths == 6
    assert report.passed
    assert all(r.reachable for r in report.results)


def test_join_is_exact_union(modulo_program):
    """Test that the modulo chain binds b to exactly {0, 1, 2}."""
    explorer, _ = _explore(modulo_program)
    assert explorer.final.env.value("b") == ValueSet(32, frozenset({0, 1, 2}))
    assert len(explorer.final.env["b"].origins) == 3


def test_narrowing_does_not_leak_past_join():
    """Test that statements after the chain see the outer constraint."""
    program = Program((
        Declare(Variable("a")),
        Let("b", Branch((Arm(cmp("<", "a", 10), Block((), Ref("a"))),), Block((), Const(0)))),
        Assert(cmp("<", "a", 10), "outer"),
    ))
    explorer, report = _explore(program)
    assert explorer.final.env.value("a").is_top()
    assert explorer.final.depth == 0
    assert report.site("outer").kind is VerdictKind.VIOLATED
    assert report.site("outer").witness.inputs == {"a": 10}


def test_infeasible_arms_are_pruned():
    """Test that an arm contradicting the path is never entered."""
    inner = Branch((Arm(cmp(">", "a", 100), Block((Assert(cmp("==", "a", 0), "dead"),))),))
    program = Program((
        Declare(Variable("a")),
        Branch((Arm(cmp("<", "a", 10), Block((inner,))),)),
    ))
    explorer, report = _explore(program)
    dead = report.site("dead")
    assert dead.kind is VerdictKind.PROVEN
    assert dead.reachable is False
    assert dead.paths == 0
    # outer arm, outer else, inner else
    assert explorer.paths == 3


def test_always_true_guard_skips_later_arms():
    """Test that arms after an always-true guard are unreachable."""
    program = Program((
        Declare(Variable("a")),
        Let("b", Branch(
            (Arm(cmp(">=", "a", 0), Block((), Const(1))),),
            Block((Assert(cmp("==", "a", 1), "never"),), Const(2)),
        )),
        Assert(cmp("==", "b", 1), "b_is_1"),
    ))
    _, report = _explore(program)
    assert report.site("never").reachable is False
    assert report.site("b_is_1").kind is VerdictKind.PROVEN


def test_path_budget(if_elseif_else_program):
    """Test that running out of paths leaves undecided sites Unknown."""
    _, report = _explore(if_elseif_else_program, VerifierConfig(max_paths=2))
    assert report.site("a_ne_5").kind is VerdictKind.PROVEN
    assert report.site("a_gt_0").kind is VerdictKind.PROVEN
    for site in ("a_gt_1", "b_lt_3", "d_gt_100"):
        assert report.site(site).kind is VerdictKind.UNKNOWN
        assert report.site(site).reason == "path budget exhausted"
    assert not report.passed


def test_path_constraint_is_immutable():
    """Test that extending a constraint leaves the original untouched."""
    pc = PathConstraint(Environment())
    guard = cmp("<", "a", 1)
    extended = pc.extend(guard, True, Environment())
    assert pc.facts == ()
    assert extended.facts == ((guard, True),)
    assert extended.depth == 1
