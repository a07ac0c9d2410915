"""Google Calendar tools exposed over MCP, the command line, and HTTP."""
