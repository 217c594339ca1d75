"""GitHub webhook bot that drafts blog posts and code changes as pull requests.

Packages:
- classifier: keyword intent detection for issues and review comments
- artifacts: blog/code artifact model, paths, front matter and lifecycle
- generator: text generation gateway and prompts
- mutation: ordered GitHub write plans and their executor
- webhook: signature verification, payload parsing and routing
- workflows: the blog and code workflows
"""
