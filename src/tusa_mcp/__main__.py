from tusa_mcp.server import main

main()
