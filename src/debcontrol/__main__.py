from debcontrol.commands.control_archive import main

if __name__ == "__main__":
    main()
