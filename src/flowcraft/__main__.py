from flowcraft.main import main

main()
