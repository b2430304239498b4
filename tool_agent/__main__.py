from tool_agent.cli import main

main()
