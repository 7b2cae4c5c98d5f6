from chest.main import main

main()
