from prosync.cli import main

main()
