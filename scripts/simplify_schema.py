import json
import sys

import click

from mcp_schema_compat.schema_utils import DEFAULT_MAX_DEPTH, find_forbidden_constructs, simplify_schema


@click.command()
@click.argument("schema_file", type=click.File("r"))
@click.option("--max-depth", default=DEFAULT_MAX_DEPTH, show_default=True, help="Deepest nesting level kept")
def main(schema_file, max_depth):
    """Print the simplified version of a JSON schema file ('-' reads stdin)."""
    schema = json.load(schema_file)

    before = find_forbidden_constructs(schema)
    simplified = simplify_schema(schema, max_depth=max_depth)
    after = find_forbidden_constructs(simplified, max_depth=max_depth)

    print(json.dumps(simplified, indent=2))
    print(f"{len(before)} forbidden construct(s) before, {len(after)} after", file=sys.stderr)
    for finding in after:
        print(f"  {finding}", file=sys.stderr)


if __name__ == "__main__":
    main()
