"""
buildspine - CI build orchestration for a multi-project .NET solution.

Resolves the build identity, provisions ephemeral databases, builds and
publishes the solution, archives artifacts and runs the test projects,
announcing everything to Azure Pipelines through ``##vso`` commands.
"""

__version__ = "0.1.0"
