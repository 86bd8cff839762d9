# polyglint/grammar.py
"""
Parsimonious PEG grammar for the analysed Java subset.

The grammar is deliberately tolerant: it knows enough of Java to follow
declarations, scopes and member-access chains, and steps over anything
else.  Statements and class members that do not match any known form are
consumed by the ``skipped_stmt`` / ``skipped_member`` fallbacks (brace
balanced) so that one malformed line never hides the rest of the unit.

Keywords are matched with ``\\b`` regexes so that identifiers such as
``returnValue`` are never split, and ``identifier`` refuses reserved words.
"""

from __future__ import annotations

from parsimonious.grammar import Grammar

JAVA_GRAMMAR_TEXT = r'''
    # ─────────────────────────────────────────────────────────────
    # Compilation unit
    # ─────────────────────────────────────────────────────────────

    compilation_unit = _ package_decl? import_decl* type_decl* _

    package_decl     = annotation_list PACKAGE _ qualified_name _ ";" _
    import_decl      = IMPORT _ static_kw? qualified_name wildcard? _ ";" _
    static_kw        = STATIC _
    wildcard         = _ "." _ "*"

    # ─────────────────────────────────────────────────────────────
    # Types & members
    # ─────────────────────────────────────────────────────────────

    type_decl        = modifiers TYPE_KIND _ identifier type_header class_body _
    type_header      = ~r"[^{;]*"
    class_body       = "{" _ member* "}"

    member           = member_form _
    member_form      = type_decl / method_decl / constructor_decl / field_decl
                     / initializer / empty_member / enum_constants / skipped_member

    method_decl      = modifiers generic_params? type _ identifier _ formal_params _ dims? throws_clause? method_body
    constructor_decl = modifiers generic_params? identifier _ formal_params _ throws_clause? block
    method_body      = block / ";"
    generic_params   = type_args _
    formal_params    = "(" _ param_list? _ ")"
    param_list       = formal_param (_ "," _ formal_param)*
    formal_param     = modifiers type _ ellipsis? identifier _ dims?
    ellipsis         = "..." _
    throws_clause    = THROWS _ type (_ "," _ type)* _

    field_decl       = modifiers type _ declarator (_ "," _ declarator)* _ ";"
    initializer      = static_kw? block
    empty_member     = ";"
    enum_constants   = enum_constant (_ "," _ enum_constant)* _ ","? _ enum_end
    enum_constant    = annotation_list identifier (_ paren_group)? (_ brace_group)?
    enum_end         = ";" / &"}"
    skipped_member   = ~r"[^;{}]*" brace_group ~r"[ \t]*;?" / ~r"[^;{}]+;"

    modifiers        = modifier*
    modifier         = (annotation / MODIFIER) _
    annotation       = "@" !INTERFACE qualified_name (_ paren_group)?
    annotation_list  = (annotation _)*

    type             = qualified_name type_args? dims?
    qualified_name   = identifier (_ "." _ identifier)*
    # nesting up to three levels: Map<String, List<Map<K, V>>>
    type_args        = ~r"<(?:[\w\s,.?\[\]&@]|<(?:[\w\s,.?\[\]&@]|<[\w\s,.?\[\]&@]*>)*>)*>"
    dims             = (_ "[" _ "]")+

    declarator       = identifier _ dims? initializer_part?
    initializer_part = _ "=" _ var_init
    var_init         = brace_group / expr

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    block            = "{" _ block_stmt* "}"
    block_stmt       = statement _
    statement        = block / try_stmt / if_stmt / while_stmt / do_stmt / for_stmt
                     / return_stmt / throw_stmt / jump_stmt / empty_stmt
                     / switch_stmt / sync_stmt / assert_stmt / type_decl
                     / labeled_stmt / local_var_decl / assign_stmt / expr_stmt
                     / skipped_stmt

    try_stmt         = TRY _ resource_spec? block catch_clause* finally_clause?
    resource_spec    = "(" _ resource (_ ";" _ resource)* _ ";"? _ ")" _
    resource         = resource_decl / expr
    resource_decl    = modifiers type _ identifier _ "=" _ expr
    catch_clause     = _ CATCH _ "(" _ modifiers catch_type _ identifier _ ")" _ block
    catch_type       = type (_ "|" _ type)*
    finally_clause   = _ FINALLY _ block

    if_stmt          = IF _ paren_expr _ statement else_part?
    else_part        = _ ELSE _ statement
    while_stmt       = WHILE _ paren_expr _ statement
    do_stmt          = DO _ statement _ WHILE _ paren_expr _ ";"
    for_stmt         = FOR _ "(" _ for_control _ ")" _ statement
    for_control      = foreach_control / classic_control
    foreach_control  = modifiers type _ identifier _ ":" _ expr
    classic_control  = for_init? _ ";" _ expr? _ ";" _ expr_list?
    for_init         = local_var_core / expr_list
    expr_list        = for_expr (_ "," _ for_expr)*
    for_expr         = assign_core / expr

    return_stmt      = RETURN _ expr? _ ";"
    throw_stmt       = THROW _ expr _ ";"
    jump_stmt        = JUMP (_ identifier)? _ ";"
    empty_stmt       = ";"
    switch_stmt      = SWITCH _ paren_expr _ brace_group
    sync_stmt        = SYNCHRONIZED _ paren_expr _ block
    assert_stmt      = ASSERT _ expr (_ ":" _ expr)? _ ";"
    labeled_stmt     = identifier _ ":" _ statement

    local_var_decl   = local_var_core _ ";"
    local_var_core   = modifiers type _ declarator (_ "," _ declarator)*
    assign_stmt      = assign_core _ ";"
    assign_core      = assign_target _ ASSIGN_OP _ expr
    assign_target    = this_field / identifier
    this_field       = THIS _ "." _ identifier
    expr_stmt        = expr _ ";"
    skipped_stmt     = ~r"[^;{}]*" brace_group ~r"[^;{}\n]*;?" / ~r"[^;{}]+;"

    # ─────────────────────────────────────────────────────────────
    # Expressions
    # ─────────────────────────────────────────────────────────────

    expr             = lambda_expr / assign_expr / ternary_expr
    assign_expr      = postfix_expr _ ASSIGN_OP _ expr
    lambda_expr      = lambda_params _ "->" _ lambda_body
    lambda_params    = identifier / paren_group
    lambda_body      = brace_group / expr
    ternary_expr     = binary_expr ternary_tail?
    ternary_tail     = _ "?" _ expr _ ":" _ expr
    binary_expr      = unary_expr (instanceof_tail / binary_tail)*
    binary_tail      = _ BINARY_OP _ unary_expr
    instanceof_tail  = _ INSTANCEOF _ modifiers type (_ identifier)?
    unary_expr       = prefix_expr / cast_expr / postfix_expr
    prefix_expr      = PREFIX_OP _ unary_expr
    cast_expr        = primitive_cast / reference_cast
    primitive_cast   = "(" _ PRIMITIVE dims? _ ")" _ unary_expr
    # "(a) + b" and "(a) - b" are arithmetic on a parenthesised operand
    reference_cast   = "(" _ type _ ")" _ !~r"[-+]" unary_expr
    postfix_expr     = primary selector* postfix_op?
    postfix_op       = _ ~r"\+\+|--"
    selector         = method_selector / field_selector / ref_selector / index_selector
    method_selector  = _ "." _ type_args? member_name _ arguments
    field_selector   = _ "." _ member_name
    ref_selector     = _ "::" _ member_name
    index_selector   = _ "[" _ expr _ "]"
    primary          = literal / creation / switch_expr / paren_expr / ctor_call / this_ref / unqualified_call / identifier
    paren_expr       = "(" _ expr _ ")"
    switch_expr      = SWITCH _ paren_expr _ brace_group
    creation         = NEW _ qualified_name type_args? _ creation_rest
    creation_rest    = object_creation / array_creation
    object_creation  = arguments (_ brace_group)?
    array_creation   = array_dim+ (_ brace_group)?
    array_dim        = _ "[" _ expr? _ "]"
    ctor_call        = this_ref _ arguments
    this_ref         = THIS / SUPER
    unqualified_call = identifier _ arguments
    arguments        = "(" _ arg_list? _ ")"
    arg_list         = expr (_ "," _ expr)*

    literal          = text_block / string_lit / char_lit / number_lit / keyword_lit
    text_block       = ~r'"""[\s\S]*?"""'
    string_lit       = ~r'"(?:[^"\\\n]|\\.)*"'
    char_lit         = ~r"'(?:[^'\\\n]|\\.)+'"
    number_lit       = ~r"(?:0[xX][0-9a-fA-F_]+|0[bB][01_]+|\d[\d_]*(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)[fFdDlL]?"
    keyword_lit      = ~r"(?:true|false|null)\b"

    # ─────────────────────────────────────────────────────────────
    # Balanced groups (skipped content)
    # ─────────────────────────────────────────────────────────────

    brace_group      = "{" brace_item* "}"
    brace_item       = brace_group / ~r'"(?:[^"\\\n]|\\.)*"' / ~r"'(?:[^'\\\n]|\\.)+'" / ~r"[^{}\"']+" / ~r"[\"']"
    paren_group      = "(" paren_item* ")"
    paren_item       = paren_group / ~r'"(?:[^"\\\n]|\\.)*"' / ~r"'(?:[^'\\\n]|\\.)+'" / ~r"[^()\"']+" / ~r"[\"']"

    # ─────────────────────────────────────────────────────────────
    # Lexical
    # ─────────────────────────────────────────────────────────────

    identifier       = ~r"(?!(?:abstract|assert|break|case|catch|class|continue|default|do|else|enum|extends|final|finally|for|if|implements|import|instanceof|interface|native|new|package|private|protected|public|return|static|strictfp|super|switch|synchronized|this|throw|throws|transient|try|volatile|while|true|false|null)\b)[A-Za-z_$][\w$]*"
    member_name      = ~r"[A-Za-z_$][\w$]*"

    PACKAGE          = ~r"package\b"
    IMPORT           = ~r"import\b"
    STATIC           = ~r"static\b"
    INTERFACE        = ~r"interface\b"
    TYPE_KIND        = ~r"(?:class|interface|enum|record)\b"
    MODIFIER         = ~r"(?:public|protected|private|static|final|abstract|native|synchronized|transient|volatile|strictfp|default|sealed|non-sealed)\b"
    THROWS           = ~r"throws\b"
    TRY              = ~r"try\b"
    CATCH            = ~r"catch\b"
    FINALLY          = ~r"finally\b"
    IF               = ~r"if\b"
    ELSE             = ~r"else\b"
    WHILE            = ~r"while\b"
    DO               = ~r"do\b"
    FOR              = ~r"for\b"
    RETURN           = ~r"return\b"
    THROW            = ~r"throw\b"
    JUMP             = ~r"(?:break|continue)\b"
    NEW              = ~r"new\b"
    SWITCH           = ~r"switch\b"
    SYNCHRONIZED     = ~r"synchronized\b"
    ASSERT           = ~r"assert\b"
    THIS             = ~r"this\b"
    SUPER            = ~r"super\b"
    INSTANCEOF       = ~r"instanceof\b"
    PRIMITIVE        = ~r"(?:byte|short|char|int|long|float|double|boolean)\b"
    ASSIGN_OP        = ~r"(?:>>>=|<<=|>>=|[-+*/%&|^]?=)(?!=)"
    BINARY_OP        = ~r"(?:\|\||&&|==|!=|<=|>=|<<|>>>|>>|[+\-*/%<>&|^])(?![=>])"
    PREFIX_OP        = ~r"\+\+|--|[-+!~]"

    _                = ~r"(?:\s+|//[^\n]*|/\*[\s\S]*?\*/)*"
'''

JAVA_GRAMMAR = Grammar(JAVA_GRAMMAR_TEXT)


__all__ = ["JAVA_GRAMMAR", "JAVA_GRAMMAR_TEXT"]
