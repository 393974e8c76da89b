"""GAS MCP relay: OAuth-authenticated HTTP relay for Google Apps Script and Sheets."""
