import pytest

from ps2pipeline.errors.exceptions import GenerationFailure, IntrospectionError
from ps2pipeline.models import SemanticType
from ps2pipeline.utils.parse_powershell import (
    check_syntax,
    extract_parameters,
    find_enum_types,
    find_function,
    parse_signature,
    script_supports_should_process,
    tokenize,
)

BUILD_SCRIPT = """#requires -Version 7
<#
.SYNOPSIS
    Builds things
#>
[CmdletBinding(SupportsShouldProcess)]
param(
    # The version to stamp
    [Parameter(Mandatory)]
    [string]
    $Version,

    [ValidateSet('Debug', 'Release')]
    [string]$Configuration = 'Release',

    [int[]]$Count,

    [switch]$Force,

    [ScriptBlock]$Filter = { $_ },

    [string]$Stamp = "$(Get-Date)",

    $Untyped
)
Write-Host "Building $Version"
"""


def by_name(parameters):
    return {p.name: p for p in parameters}


def test_parameters_in_declaration_order():
    parameters = extract_parameters(BUILD_SCRIPT)
    assert [p.name for p in parameters] == ["Version", "Configuration", "Count", "Force", "Filter", "Stamp", "Untyped"]


def test_types_and_flags():
    params = by_name(extract_parameters(BUILD_SCRIPT))
    assert params["Version"].type is SemanticType.TEXT
    assert params["Version"].mandatory is True
    assert params["Configuration"].mandatory is False
    assert params["Count"].type is SemanticType.ARRAY_OF_NUMBER
    assert params["Count"].type_name == "int[]"
    assert params["Force"].type is SemanticType.BOOLEAN
    assert params["Filter"].type is SemanticType.SCRIPT_FRAGMENT
    assert params["Untyped"].type is SemanticType.OPAQUE
    assert params["Untyped"].type_name == ""


def test_validate_set_populates_valid_values():
    params = by_name(extract_parameters(BUILD_SCRIPT))
    assert params["Configuration"].valid_values == ("Debug", "Release")
    assert params["Version"].valid_values is None


def test_constant_defaults_only():
    params = by_name(extract_parameters(BUILD_SCRIPT))
    assert params["Configuration"].default_literal == "Release"
    assert params["Version"].default_literal is None
    # script blocks and sub-expressions are never copied into generated text
    assert params["Filter"].default_literal is None
    assert params["Stamp"].default_literal is None


def test_should_process_detected():
    assert script_supports_should_process(BUILD_SCRIPT) is True
    assert script_supports_should_process("[CmdletBinding()]\nparam($x)") is False
    assert script_supports_should_process("[CmdletBinding(SupportsShouldProcess=$true)]\nparam($x)") is True


@pytest.mark.parametrize(
    "declaration, expected",
    [
        ("[string]$S = 'it''s'", "it's"),
        ('[string]$S = "plain"', "plain"),
        ('[string]$S = "tab`there"', "tab\there"),
        ('[string]$S = "hi $name"', None),
        ("[int]$N = 42", "42"),
        ("[int]$N = -5", "-5"),
        ("[bool]$B = $true", "true"),
        ("[switch]$B = $False", "false"),
        ("$X = $null", None),
        ("$X = $env:FOO", None),
        ("$X = Get-Date", None),
        ("[string[]]$Names = @('a', 'b')", "a;b"),
        ("[string[]]$Names = 'a', 'b'", "a;b"),
        ("[int[]]$Numbers = (1, 2, 3)", "1;2;3"),
        ("[string[]]$Names = @('a', $b)", None),
        ("[string[]]$Names = @()", None),
    ],
)
def test_default_literal(declaration, expected):
    (parameter,) = extract_parameters(f"param({declaration})")
    assert parameter.default_literal == expected


def test_here_string_default():
    script = "param([string]$Body = @'\nhello\n'@)\n"
    (parameter,) = extract_parameters(script)
    assert parameter.default_literal == "hello"


def test_mandatory_variants():
    script = """param(
        [Parameter(Mandatory=$true, Position=0)]$A,
        [Parameter(Mandatory=$false)]$B,
        [Parameter(ValueFromPipeline)]$C,
        [Parameter(Mandatory=1)]$D
    )"""
    params = by_name(extract_parameters(script))
    assert params["A"].mandatory is True
    assert params["B"].mandatory is False
    assert params["C"].mandatory is False
    assert params["D"].mandatory is True


def test_enum_from_module_text():
    module_text = "enum Color { Red; Green = 2\n Blue }\n"
    signature = parse_signature("param([Color]$Shade)", context_text=module_text)
    (shade,) = signature.parameters
    assert shade.type is SemanticType.ENUM
    assert shade.valid_values == ("Red", "Green", "Blue")


def test_enum_from_caller_mapping():
    (day,) = extract_parameters(
        "param([System.DayOfWeek]$Day)", enum_types={"System.DayOfWeek": ["Monday", "Tuesday"]}
    )
    assert day.type is SemanticType.ENUM
    assert day.valid_values == ("Monday", "Tuesday")


def test_validate_set_wins_over_enum_members():
    (day,) = extract_parameters(
        "param([ValidateSet('Monday')][DayOfWeek]$Day)", enum_types={"DayOfWeek": ["Monday", "Tuesday"]}
    )
    assert day.valid_values == ("Monday",)


def test_find_enum_types():
    assert find_enum_types("enum Size : int { Small = 1; Large = 2 }") == {"Size": ("Small", "Large")}


def test_script_block_wrapper_is_unwrapped():
    (x,) = extract_parameters("{ param([int]$x) $x * 2 }")
    assert x.name == "x"
    assert x.type is SemanticType.NUMBER


def test_script_without_param_block():
    assert extract_parameters("Write-Host 'hello'") == []
    assert extract_parameters("") == []


def test_unbalanced_script_raises():
    with pytest.raises(IntrospectionError):
        extract_parameters("param([string]$x")


def test_unterminated_string_raises():
    with pytest.raises(IntrospectionError):
        extract_parameters("param([string]$x = 'oops)")


def test_malformed_parameter_raises():
    with pytest.raises(IntrospectionError):
        extract_parameters("param([string])")


def test_scoped_variable_name():
    (p,) = extract_parameters("param($global:Thing)")
    assert p.name == "Thing"


def test_find_function_with_param_block():
    module_text = """
function Get-Other { 'other' }

function Publish-Thing {
    [CmdletBinding(SupportsShouldProcess)]
    param([string]$Target)
    Write-Host $Target
}
"""
    body = find_function(module_text, "publish-thing")
    assert body is not None
    signature = parse_signature(body)
    assert [p.name for p in signature.parameters] == ["Target"]
    assert signature.supports_should_process is True


def test_find_function_inline_parameters():
    body = find_function("function global:Add-It([int]$a, [int]$b) { $a + $b }", "Add-It")
    assert [p.name for p in extract_parameters(body)] == ["a", "b"]


def test_find_function_missing():
    assert find_function("function A { }", "B") is None


def test_tokenize_double_quoted_subexpression_with_quotes():
    tokens = tokenize('"value: $(if ($x) { "yes" } else { "no" })"')
    assert len(tokens) == 1
    assert tokens[0].expandable is True


def test_check_syntax_accepts_valid_script():
    check_syntax("$Parameters = @{}\nforeach ($k in @($Parameters.Keys)) { $Parameters.Remove($k) }\n")


def test_check_syntax_reports_generated_text():
    with pytest.raises(GenerationFailure) as exc:
        check_syntax("& {\nWrite-Host 'hi'\n")
    assert "Write-Host 'hi'" in exc.value.generated_text


def test_hash_inside_bareword_is_not_a_comment():
    tokens = tokenize("Write-Host C#Sharp (1)")
    assert [t.kind for t in tokens] == ["word", "word", "lparen", "number", "rparen"]
    assert tokens[1].value == "C#Sharp"


def test_hash_inside_url_keeps_rest_of_line():
    script = "param([string]$Uri)\nInvoke-RestMethod https://host/p#frag -Body (Get-Body)\n"
    assert [p.name for p in extract_parameters(script)] == ["Uri"]


def test_hash_after_whitespace_is_a_comment():
    tokens = tokenize("Write-Host hi # trailing (")
    assert tokens[-1].kind == "comment"
    assert tokens[-1].value == "# trailing ("
