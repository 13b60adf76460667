from n8n_manager.main import main

if __name__ == "__main__":
    main()
