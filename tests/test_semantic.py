"""Tests for the semantic analyzer."""

from estree_nodes import (
    assign, at, binary, block, call, class_decl, conditional, const, expr, for_, func,
    ident, if_, let, lit, log, logical, member, program, ret, unary, update, var, while_,
)


def messages(items):
    return [d.message for d in items]


class TestDeclarations:
    """Test declaration and redeclaration rules."""

    def test_let_redeclared_once(self, analyze):
        """Redeclaring a let reports exactly one error."""
        result = analyze(program(let("x", 1), let("x", 2), log("x")))
        assert messages(result.errors) == ["Cannot redeclare block-scoped variable 'x'"]

    def test_nested_redeclaration(self, analyze):
        """Only the conflicting declaration in the inner block is reported."""
        tree = program(
            let("x", 1),
            block(let("x", 2), let("x", 3), log("x")),
            log("x"),
        )
        assert len(analyze(tree).errors) == 1

    def test_var_redeclared(self, analyze):
        """Redeclaring a var reports one error."""
        result = analyze(program(var("v", 1), var("v", 2), log("v")))
        assert messages(result.errors) == ["Identifier 'v' has already been declared"]

    def test_var_in_block_hits_global(self, analyze):
        """A var inside a block is checked against the enclosing function scope."""
        result = analyze(program(var("v", 1), block(var("v", 2)), log("v")))
        assert len(result.errors) == 1

    def test_var_stored_in_function_scope(self, analyze):
        """A var declared in a block is visible after the block."""
        tree = program(func("f", [], block(var("v", 1)), ret("v")), expr(call("f")))
        result = analyze(tree)
        assert result.errors == []
        fn_scope = result.global_scope.children[0]
        assert "v" in fn_scope.symbols

    def test_different_kind(self, analyze):
        """let then var of the same name names the kind clash."""
        result = analyze(program(let("x", 1), var("x", 2), log("x")))
        assert messages(result.errors) == [
            "Identifier 'x' has already been declared with a different kind"]

    def test_const_without_initializer(self, analyze):
        """const without initializer is one error and no unused warning."""
        result = analyze(program(const("y")))
        assert messages(result.errors) == ["Missing initializer in const declaration 'y'"]
        assert result.warnings == []

    def test_shadowing_is_allowed(self, analyze):
        """A block may shadow an outer let."""
        tree = program(let("x", 1), block(let("x", 2), log("x")), log("x"))
        assert analyze(tree).errors == []

    def test_error_position(self, analyze):
        """Diagnostics carry the line and column of the offending node."""
        decl = let("x", 2)
        at(decl["declarations"][0], 3, 4)
        result = analyze(program(let("x", 1), decl, log("x")))
        error = result.errors[0]
        assert (error.line, error.column) == (3, 4)
        assert error.as_dict()["node"] == "VariableDeclarator"


class TestIdentifiers:
    """Test name resolution and initialization checks."""

    def test_undeclared(self, analyze):
        """Reading an undeclared name is an error and has unknown kind."""
        node = ident("z")
        result = analyze(program(expr(call(member("console", "log"), node))))
        assert messages(result.errors) == ["'z' is not defined"]
        assert result.kind_of(node) == "unknown"

    def test_used_before_initialized(self, analyze):
        """Reading a let declared without a value is an error."""
        result = analyze(program(let("x"), log("x")))
        assert messages(result.errors) == ["Variable 'x' is used before being initialized"]

    def test_assignment_initializes(self, analyze):
        """An assignment marks the variable initialized."""
        result = analyze(program(let("x"), expr(assign("x", 3)), log("x")))
        assert result.errors == []

    def test_assign_to_const(self, analyze):
        """Assigning to a const is an error."""
        result = analyze(program(const("c", 1), expr(assign("c", 2)), log("c")))
        assert messages(result.errors) == ["Cannot assign to const variable 'c'"]

    def test_assign_to_undeclared(self, analyze):
        """Assigning to an undeclared name is an error."""
        result = analyze(program(expr(assign("q", 1))))
        assert messages(result.errors) == ["Cannot assign to undeclared variable 'q'"]

    def test_update_const(self, analyze):
        """++ on a const is an error."""
        result = analyze(program(const("c", 1), expr(update("++", "c")), log("c")))
        assert messages(result.errors) == ["Cannot update const variable 'c'"]

    def test_builtins_resolve(self, analyze):
        """Builtins are declared and never reported as unused."""
        tree = program(let("n", call("parseInt", call("prompt", lit("q")))), log("n", "NaN"))
        result = analyze(tree)
        assert result.errors == []
        assert result.warnings == []

    def test_builtin_return_kind(self, analyze):
        """A builtin call takes the builtin's return kind."""
        node = call("parseFloat", lit("1.5"))
        analyze_result = analyze(program(let("n", node), log("n")))
        assert analyze_result.kind_of(node) == "number"


class TestFunctions:
    """Test functions, calls and hoisting."""

    def test_call_before_declaration(self, analyze):
        """Function declarations are hoisted."""
        result = analyze(program(expr(call("f")), func("f", [], ret(1))))
        assert result.errors == []
        assert result.warnings == []

    def test_mutual_recursion(self, analyze):
        """Sibling functions may call each other in either order."""
        tree = program(
            func("a", ["n"], ret(call("b", "n"))),
            func("b", ["n"], ret(call("a", "n"))),
            expr(call("a", 1)),
        )
        assert analyze(tree).errors == []

    def test_string_return_kind(self, analyze):
        """Returning a string literal makes the function return a string."""
        tree = program(func("f", [], ret(lit("s"))), let("r", call("f")), log("r"))
        result = analyze(tree)
        assert result.global_scope.lookup("f").return_kind == "string"
        assert result.global_scope.lookup("r").inferred == "string"

    def test_arity_warning(self, analyze):
        """Calling with the wrong number of arguments warns."""
        tree = program(func("f", ["a"], ret("a")), expr(call("f", 1, 2)))
        result = analyze(tree)
        assert result.errors == []
        assert messages(result.warnings) == ["Function 'f' expects 1 arguments, but received 2"]

    def test_not_a_function(self, analyze):
        """Calling a plain variable warns."""
        result = analyze(program(let("n", 5), expr(call("n"))))
        assert messages(result.warnings) == ["'n' is not a function, its kind is 'number'"]

    def test_call_undefined_function(self, analyze):
        """Calling an undeclared name is an error; arguments are still checked."""
        result = analyze(program(expr(call("nope", "alsoNope"))))
        assert messages(result.errors) == [
            "Function 'nope' is not defined", "'alsoNope' is not defined"]

    def test_return_outside_function(self, analyze):
        """return at the top level is an error."""
        result = analyze(program(ret(1)))
        assert messages(result.errors) == ["'return' statement outside of a function"]

    def test_missing_return(self, analyze):
        """A function with no return warns, except main."""
        tree = program(
            func("g", [], log(1)),
            func("main", [], log(2)),
            expr(call("g")),
            expr(call("main")),
        )
        result = analyze(tree)
        assert messages(result.warnings) == ["Function 'g' has no return statement"]

    def test_unreachable_code(self, analyze):
        """Statements after a return warn."""
        result = analyze(program(func("f", [], ret(1), log(lit("x"))), expr(call("f"))))
        assert "Unreachable code detected" in messages(result.warnings)

    def test_unused_parameter(self, analyze):
        """An unused parameter is reported."""
        result = analyze(program(func("f", ["p"], ret(1)), expr(call("f", 0))))
        assert messages(result.warnings) == ["'p' is declared but its value is never used"]

    def test_class_is_callable(self, analyze):
        """A class declaration binds a callable name."""
        tree = program(class_decl("Point"), expr({"type": "NewExpression",
                                                   "callee": ident("Point"), "arguments": []}))
        result = analyze(tree)
        assert result.errors == []
        assert result.global_scope.lookup("Point").callable


class TestKinds:
    """Test inferred value kinds."""

    def test_number_addition(self, analyze):
        node = binary("+", 1, 2)
        assert analyze(program(expr(node))).kind_of(node) == "number"

    def test_string_concatenation(self, analyze):
        node = binary("+", lit("a"), 1)
        assert analyze(program(expr(node))).kind_of(node) == "string"

    def test_comparison_is_boolean(self, analyze):
        node = binary("<", 1, 2)
        assert analyze(program(expr(node))).kind_of(node) == "boolean"

    def test_bitwise_is_number(self, analyze):
        node = binary("|", lit("a"), 1)
        assert analyze(program(expr(node))).kind_of(node) == "number"

    def test_mixed_arithmetic_is_unknown(self, analyze):
        node = binary("-", 1, lit("a"))
        result = analyze(program(expr(node)))
        assert result.kind_of(node) == "unknown"

    def test_let_takes_initializer_kind(self, analyze):
        result = analyze(program(let("s", lit("hi")), log("s")))
        assert result.global_scope.lookup("s").inferred == "string"


class TestConstantConditions:
    """Test warnings for conditions known at compile time."""

    def test_if_always_true(self, analyze):
        result = analyze(program(if_(lit(True), block(log(1)), block(log(2)))))
        assert messages(result.warnings) == [
            "Condition is always true; the else branch is never executed"]

    def test_if_always_false(self, analyze):
        result = analyze(program(if_(lit(0), block(log(1)))))
        assert messages(result.warnings) == [
            "Condition is always false; the if branch is never executed"]

    def test_infinite_while(self, analyze):
        result = analyze(program(while_(lit(True), block())))
        assert messages(result.warnings) == ["Possible infinite loop: condition is always true"]

    def test_while_never_runs(self, analyze):
        result = analyze(program(while_(lit(False), block())))
        assert messages(result.warnings) == ["Loop condition is always false; the body never runs"]

    def test_or_short_circuit(self, analyze):
        result = analyze(program(let("a", logical("||", 1, 2)), log("a")))
        assert messages(result.warnings) == [
            "Left side of || is always true; the right side is never evaluated"]

    def test_and_short_circuit(self, analyze):
        result = analyze(program(let("a", logical("&&", 0, 2)), log("a")))
        assert messages(result.warnings) == [
            "Left side of && is always false; the right side is never evaluated"]

    def test_conditional_expression(self, analyze):
        result = analyze(program(let("a", conditional(lit(0), 1, 2)), log("a")))
        assert messages(result.warnings) == [
            "Condition is always false; the consequent branch is never evaluated"]

    def test_double_negation(self, analyze):
        result = analyze(program(let("a", unary("!", unary("!", 1))), log("a")))
        assert "Double negation (!!), consider using Boolean() instead" in messages(result.warnings)


class TestMisc:
    """Test the remaining checks and the report."""

    def test_unknown_console_method(self, analyze):
        result = analyze(program(expr(call(member("console", "shout"), 1))))
        assert messages(result.warnings) == ["Unknown console method: shout"]

    def test_unknown_node_type(self, analyze):
        result = analyze(program({"type": "DebuggerStatement"}))
        assert messages(result.warnings) == ["Unknown node type: DebuggerStatement"]

    def test_for_loop_scope(self, analyze):
        """The for-loop binding lives in its own block scope."""
        tree = program(
            for_(let("i", 0), binary("<", "i", 3), update("++", "i"), block(log("i"))),
            let("i", 9),
            log("i"),
        )
        assert analyze(tree).errors == []

    def test_used_symbols_not_reported(self, analyze):
        """A symbol read anywhere is never reported as unused."""
        result = analyze(program(let("a", 1), log("a")))
        assert result.warnings == []
        assert [row["used"] for row in result.symbol_rows()] == [True]

    def test_unused_variable(self, analyze):
        result = analyze(program(let("a", 1)))
        assert messages(result.warnings) == ["'a' is declared but its value is never used"]

    def test_statistics(self, analyze):
        tree = program(let("a", 1), const("b", 2), func("f", ["p"], ret("p")),
                       expr(call("f", "a")), log("b"))
        stats = analyze(tree).statistics()
        assert stats == {"variables": 1, "constants": 1, "functions": 1,
                         "parameters": 1, "unused": 0}

    def test_symbol_rows_scope_path(self, analyze):
        tree = program(func("f", ["p"], ret("p")), expr(call("f", 1)))
        rows = analyze(tree).symbol_rows()
        assert {(r["name"], r["scope"], r["depth"]) for r in rows} == {
            ("f", "global", 0), ("p", "global.function0", 1)}

    def test_report(self, analyze):
        report = analyze(program(let("x", 1), let("x", 2))).report()
        assert "Semantic errors: 1" in report
        assert "SYMBOL TABLE:" in report
        assert "Cannot redeclare block-scoped variable 'x'" in report
