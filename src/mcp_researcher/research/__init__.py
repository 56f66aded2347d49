"""Research building blocks: MCP strategy, MCP research skill, hybrid merge."""
