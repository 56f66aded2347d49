from mcp_researcher.core.cli import main

raise SystemExit(main())
