from editorpool.cli import main

main()
